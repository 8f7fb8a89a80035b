"""
GRACEFULSHUTDOWN - Lifecycle Hook Manager

Listens for autoscaler termination notices on a queue and over http.
A notice for this instance starts shutdown; a notice for another instance
is forwarded to that instance over http. While shutdown callbacks run,
lifecycle action heartbeats keep the instance from being terminated, and
once they finish the lifecycle action is completed.
"""

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Union

from requests import RequestException

from gracefulshutdown.config.settings import LifecycleHookConfig
from gracefulshutdown.core.backoff import BackoffPolicy
from gracefulshutdown.core.errors import ForwardError, LifecycleStateError
from gracefulshutdown.core.heartbeat import HeartbeatTicker
from gracefulshutdown.core.types import ShutdownManager, ShutdownTrigger
from gracefulshutdown.infrastructure.aws_api import Boto3LifecycleApi, LifecycleApi
from gracefulshutdown.infrastructure.http import HttpClient, RequestsHttpClient
from gracefulshutdown.managers.lifecycle_message import LifecycleHookMessage, decode_message

logger = logging.getLogger(__name__)

NAME = "LifecycleHookManager"


class LifecycleRequestHandler(BaseHTTPRequestHandler):
    """Accepts forwarded lifecycle notices: 200 if handled, 400 otherwise."""

    server: "LifecycleHookServer"

    def do_POST(self) -> None:
        try:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length > 0 else b""
            handled = self.server.manager.handle_message(body)
        except Exception as e:
            logger.error(f"Error handling forwarded message: {e}", exc_info=True)
            handled = False

        self.send_response(200 if handled else 400)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def log_message(self, format: str, *args) -> None:
        logger.debug(f"{self.address_string()} - {format % args}")


class LifecycleHookServer(ThreadingHTTPServer):
    """HTTP server bound to a lifecycle hook manager."""

    daemon_threads = True

    def __init__(self, address: tuple, manager: "LifecycleHookManager"):
        self.manager = manager
        super().__init__(address, LifecycleRequestHandler)


class LifecycleHookManager(ShutdownManager):
    """
    Shutdown manager driven by autoscaling lifecycle hook notices.

    Heartbeats are sent every config.ping_interval from shutdown_start()
    until shutdown_finish(), which then completes the lifecycle action.
    shutdown_start() and shutdown_finish() require that a notice for this
    instance was accepted first.
    """

    name = NAME

    def __init__(
        self,
        config: Optional[LifecycleHookConfig] = None,
        api: Optional[LifecycleApi] = None,
        http_client: Optional[HttpClient] = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        """
        Initialize lifecycle hook manager.

        Args:
            config: Manager configuration; unset values take defaults
            api: Cloud API (boto3 backed if None)
            http_client: HTTP client for forwarding and metadata
            backoff: Retry policy (built from config.backoff if None)
        """
        self._config = (config or LifecycleHookConfig()).clean()
        self._config.validate()

        self._http = http_client or RequestsHttpClient()
        self._api = api or Boto3LifecycleApi(http_client=self._http)
        self._backoff = backoff or BackoffPolicy(self._config.backoff)

        self._trigger: Optional[ShutdownTrigger] = None

        # Written once when a notice is accepted, before shutdown starts
        self._lifecycle_action_token = ""
        self._auto_scaling_group_name = ""
        self._accepted = False
        self._accept_lock = threading.Lock()

        self._ticker: Optional[HeartbeatTicker] = None

        # Listeners
        self._server: Optional[LifecycleHookServer] = None
        self._server_lock = threading.Lock()
        self._queue_thread: Optional[threading.Thread] = None
        self._closed = threading.Event()

    @property
    def config(self) -> LifecycleHookConfig:
        return self._config

    @property
    def server_address(self) -> Optional[tuple]:
        """Address the http listener is bound to, if listening."""
        with self._server_lock:
            return self._server.server_address if self._server else None

    def start(self, trigger: ShutdownTrigger) -> None:
        """
        Start listening for termination notices.

        Raises:
            MetadataError: If region or instance id cannot be collected
            OSError: If the http listener cannot be bound
            Exception: Any error from initializing the cloud API
        """
        self._trigger = trigger

        if not self._config.region:
            availability_zone = self._api.get_metadata("placement/availability-zone")
            self._config.region = availability_zone[:-1]

        if not self._config.instance_id:
            self._config.instance_id = self._api.get_metadata("instance-id")

        self._api.init(self._config)

        if self._config.port != 0:
            self._listen_http()
            trigger.add_shutdown_callback(self)

        if self._config.queue_name:
            self._queue_thread = threading.Thread(
                target=self._listen_queue, name="lifecycle-queue", daemon=True
            )
            self._queue_thread.start()

        logger.info(
            f"Lifecycle hook manager listening for '{self._config.lifecycle_hook_name}' "
            f"on {self._config.instance_id} ({self._config.region})"
        )

    def on_shutdown(self, manager_name: str) -> None:
        """Close the http listener when shutdown runs."""
        self._close_server()

    def handle_message(self, raw: Union[str, bytes]) -> bool:
        """
        Route a termination notice.

        Args:
            raw: Notice body

        Returns:
            True if the notice was accepted or forwarded, False if rejected
        """
        message = decode_message(raw)
        if message is None:
            logger.debug("Ignoring message: not a lifecycle notification")
            return False

        if message.lifecycle_hook_name != self._config.lifecycle_hook_name:
            logger.debug(f"Ignoring message for hook '{message.lifecycle_hook_name}'")
            return False

        if not message.is_terminating():
            logger.debug(f"Ignoring transition '{message.lifecycle_transition}'")
            return False

        if message.ec2_instance_id == self._config.instance_id:
            self._accept(message)
            return True

        if self._config.port != 0:
            try:
                self.forward_message(message, raw)
            except Exception as e:
                self._report_error(e)
            return True

        logger.debug(f"Ignoring message for instance {message.ec2_instance_id}")
        return False

    def forward_message(self, message: LifecycleHookMessage, raw: Union[str, bytes]) -> None:
        """
        Forward a notice to the instance it is addressed to.

        Args:
            message: Decoded notice
            raw: Original notice body, forwarded unchanged

        Raises:
            HostLookupError: If the instance address cannot be resolved
            ForwardError: If every delivery attempt failed
        """
        host = self._api.get_host(message.ec2_instance_id)
        url = f"http://{host}:{self._config.port}/"
        attempts = self._backoff.attempts(self._config.num_forward_retries)

        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                response = self._http.post(
                    url,
                    data=raw,
                    headers={"Content-Type": "application/json"},
                    timeout=self._config.forward_timeout,
                )
                response.raise_for_status()
                logger.info(f"Forwarded lifecycle message for {message.ec2_instance_id} to {url}")
                return
            except RequestException as e:
                last_error = e
                logger.warning(f"Forward attempt {attempt + 1}/{attempts} to {url} failed: {e}")
                if attempt + 1 < attempts:
                    self._backoff.wait(attempt)

        raise ForwardError(message.ec2_instance_id, url, attempts) from last_error

    def shutdown_start(self) -> None:
        """Start sending lifecycle action heartbeats every ping_interval."""
        self._require_accepted()

        self._ticker = HeartbeatTicker(
            self._send_heartbeat,
            self._config.ping_interval,
            on_error=self._report_error,
            name="lifecycle-heartbeat",
        )
        self._ticker.start()

    def shutdown_finish(self) -> None:
        """Stop heartbeats, then complete the lifecycle action with CONTINUE."""
        if self._ticker is not None:
            self._ticker.stop()

        self._require_accepted()

        self._api.complete_lifecycle_action(
            self._auto_scaling_group_name,
            self._lifecycle_action_token,
        )
        logger.info(f"Lifecycle action completed for {self._auto_scaling_group_name}")

    def close(self) -> None:
        """Stop polling the queue and close the http listener."""
        self._closed.set()
        self._close_server()

    def _accept(self, message: LifecycleHookMessage) -> None:
        with self._accept_lock:
            if self._accepted:
                logger.info(
                    f"Termination notice for {message.ec2_instance_id} already accepted, ignoring duplicate"
                )
                return
            self._lifecycle_action_token = message.lifecycle_action_token
            self._auto_scaling_group_name = message.auto_scaling_group_name
            self._accepted = True

        logger.info(
            f"Termination notice accepted for {message.ec2_instance_id} "
            f"in {message.auto_scaling_group_name}"
        )
        threading.Thread(
            target=self._trigger.start_shutdown,
            args=(self,),
            name="lifecycle-shutdown",
            daemon=True,
        ).start()

    def _send_heartbeat(self) -> None:
        logger.debug(f"Sending lifecycle heartbeat for {self._auto_scaling_group_name}")
        self._api.send_heartbeat(self._auto_scaling_group_name, self._lifecycle_action_token)

    def _require_accepted(self) -> None:
        if not self._accepted:
            raise LifecycleStateError("No termination notice has been accepted for this instance")

    def _report_error(self, error: Exception) -> None:
        if self._trigger is not None:
            self._trigger.report_error(error)
        else:
            logger.error(f"Lifecycle hook manager error: {error}")

    def _create_server(self) -> LifecycleHookServer:
        return LifecycleHookServer(("", self._config.port), self)

    def _listen_http(self) -> None:
        """Bind the http listener, retrying with backoff, and serve in the background."""
        attempts = self._backoff.attempts(self._config.num_serve_retries)

        for attempt in range(attempts):
            try:
                server = self._create_server()
                break
            except OSError as e:
                if attempt + 1 >= attempts:
                    raise
                logger.warning(f"Binding port {self._config.port} failed, retrying: {e}")
                self._backoff.wait(attempt)

        with self._server_lock:
            self._server = server

        threading.Thread(
            target=server.serve_forever, name="lifecycle-http", daemon=True
        ).start()
        logger.info(f"Listening for forwarded messages on port {self._config.port}")

    def _close_server(self) -> None:
        with self._server_lock:
            server = self._server
            self._server = None

        if server is not None:
            server.shutdown()
            server.server_close()
            logger.info("Http listener closed")

    def _listen_queue(self) -> None:
        """Poll the queue until closed, deleting accepted or forwarded messages."""
        while not self._closed.is_set():
            try:
                message = self._api.receive_message()
            except Exception as e:
                self._report_error(e)
                self._closed.wait(self._backoff.duration(0))
                continue

            if message is None:
                continue

            if self.handle_message(message.body):
                try:
                    self._api.delete_message(message)
                except Exception as e:
                    self._report_error(e)
