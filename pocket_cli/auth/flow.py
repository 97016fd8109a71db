"""Three-legged authorization handshake with a local callback listener."""

import logging
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, Optional

from ..api.models import AccessCredential
from ..api.pocket_client import PocketClient
from ..errors import APIError, AuthExchangeFailed, AuthRequestFailed, NotAuthenticated
from ..state.credentials import CredentialStore

logger = logging.getLogger(__name__)

FAVICON_PATH = "/favicon.ico"


class _CallbackHandler(BaseHTTPRequestHandler):
    """Answers the browser redirect that follows the user's approval."""

    def log_message(self, format, *args) -> None:
        logger.debug("callback %s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        if self.path.split("?", 1)[0] == FAVICON_PATH:
            self.send_error(404, "Not Found")
            return

        body = b"Authorized.\n"
        self.send_response(200)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

        self.server.authorized.set()


class CallbackListener:
    """Single-use HTTP listener on a loopback port.

    Use as a context manager: the server thread starts on enter and the
    socket is closed on exit, whether or not the handshake completed.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0):
        self.host = host
        self.port = port
        self._server: Optional[HTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    def __enter__(self) -> "CallbackListener":
        self._server = HTTPServer((self.host, self.port), _CallbackHandler)
        self._server.authorized = threading.Event()
        self.port = self._server.server_address[1]
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="pocket-auth-callback", daemon=True
        )
        self._thread.start()
        logger.debug("Callback listener started on %s", self.redirect_url)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def redirect_url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    @property
    def authorized(self) -> threading.Event:
        if self._server is None:
            raise RuntimeError("Listener is not running")
        return self._server.authorized

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the first non-favicon request arrives."""
        return self.authorized.wait(timeout)

    def close(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join()
        logger.debug("Callback listener on port %s closed", self.port)
        self._server = None
        self._thread = None


class AuthorizationFlow:
    """Obtains and persists an access credential through the user's browser.

    The flow waits for the browser redirect without a timeout; the user
    aborts with Ctrl+C, which still tears the listener down.
    """

    def __init__(
        self,
        client: PocketClient,
        store: CredentialStore,
        host: str = "127.0.0.1",
        port: int = 0,
        display: Callable[[str], None] = print,
    ):
        """Initialize the flow.

        Args:
            client: Pocket client built with the consumer key
            store: Where the resulting credential is persisted
            host: Loopback address the callback listener binds to
            port: Listener port, 0 for an ephemeral one
            display: Shows the approval URL to the user
        """
        self.client = client
        self.store = store
        self.host = host
        self.port = port
        self.display = display

    def run(self) -> AccessCredential:
        """Run the handshake and persist the credential.

        Raises:
            AuthRequestFailed: If no request token could be obtained.
            AuthExchangeFailed: If the approved token could not be exchanged.
        """
        with CallbackListener(self.host, self.port) as listener:
            redirect_url = listener.redirect_url

            try:
                request = self.client.obtain_request_token(redirect_url)
            except APIError as e:
                raise AuthRequestFailed(f"Could not obtain request token: {e}") from e

            url = self.client.build_authorization_url(request, redirect_url)
            self.display(url)

            listener.wait()
            logger.info("Authorization callback received")

            try:
                credential = self.client.obtain_access_token(request)
            except APIError as e:
                raise AuthExchangeFailed(f"Could not obtain access token: {e}") from e

            self.store.save_access_credential(credential)

        return credential


def ensure_access_credential(
    store: CredentialStore,
    client: PocketClient,
    flow_factory: Callable[[PocketClient, CredentialStore], AuthorizationFlow] = AuthorizationFlow,
) -> AccessCredential:
    """Return the saved credential, authorizing first if there is none.

    A persisted credential is reused without any network call.
    """
    try:
        return store.load_access_credential()
    except NotAuthenticated as e:
        logger.info("%s", e)

    return flow_factory(client, store).run()
