import signal
import threading
from wsgiref.simple_server import make_server

import falcon

from gcpvault.dto.settings import Settings
from gcpvault.middleware.error_handler import handle_unexpected_error, serialize_http_error
from gcpvault.middleware.logging_middleware import LoggingMiddleware
from gcpvault.resources.health_resource import HealthResource
from gcpvault.resources.key_resource import KeyResource
from gcpvault.resources.roleset_resource import RolesetResource
from gcpvault.resources.token_resource import TokenResource
from gcpvault.services.gcp_secrets_service import GcpSecretsService, create_vault_client
from gcpvault.services.protocol.gcp_secrets_service_protocol import GcpSecretsServiceProtocol
from gcpvault.util.errors import VaultGatewayError
from gcpvault.util.logger import log, set_level
from gcpvault.util.quiet_handler import QuietHandler, ThreadingWSGIServer
from gcpvault.util.setup import load_settings

STARTUP_TIMEOUT = 60
SHUTDOWN_TIMEOUT = 30


def create_app(gcp_secrets_service: GcpSecretsServiceProtocol) -> falcon.App:
    app = falcon.App(middleware=[LoggingMiddleware()])
    app.req_options.strip_url_path_trailing_slash = True
    app.add_error_handler(Exception, handle_unexpected_error)
    app.set_error_serializer(serialize_http_error)

    rolesets = RolesetResource(gcp_secrets_service)
    tokens = TokenResource(gcp_secrets_service)
    keys = KeyResource(gcp_secrets_service)

    app.add_route('/health', HealthResource(gcp_secrets_service))
    app.add_route('/api/v1/rolesets', rolesets)
    app.add_route('/api/v1/rolesets/{name}', rolesets, suffix='item')
    app.add_route('/api/v1/tokens', tokens)
    app.add_route('/api/v1/tokens/{name}', tokens, suffix='item')
    app.add_route('/api/v1/keys', keys)
    app.add_route('/api/v1/keys/{name}', keys, suffix='item')
    return app


class Server:
    def __init__(self, settings: Settings = None, gcp_secrets_service: GcpSecretsServiceProtocol = None):
        log("Starting server....")
        self.settings = settings or load_settings()
        set_level(self.settings.log_level)
        log(
            "Configuration loaded successfully",
            vault_address=self.settings.vault.address,
            server_port=self.settings.server.port,
            gcp_project=self.settings.gcp.project_id,
        )

        if gcp_secrets_service is None:
            gcp_secrets_service = GcpSecretsService(create_vault_client(self.settings), self.settings)
        self.gcp_secrets_service = gcp_secrets_service
        self.app = create_app(self.gcp_secrets_service)

        self.httpd = None
        self.shutdown_event = threading.Event()

    def bootstrap(self, timeout: float = STARTUP_TIMEOUT):
        """Mount, configure and probe Vault once, before any request is accepted."""
        errors = []

        def provision():
            try:
                self.gcp_secrets_service.initialize()
                self.gcp_secrets_service.configure_engine()
                self.gcp_secrets_service.health_check()
            except Exception as e:
                errors.append(e)

        thread = threading.Thread(target=provision, daemon=True)
        thread.start()
        thread.join(timeout)
        if thread.is_alive():
            raise VaultGatewayError(f"Vault provisioning did not finish within {timeout}s")
        if errors:
            raise errors[0]
        log("Vault GCP secrets engine initialized successfully")

    def run(self):
        self.bootstrap()

        host, port = self.settings.server.host, self.settings.server.port
        self.httpd = make_server(host, port, self.app,
                                 server_class=ThreadingWSGIServer, handler_class=QuietHandler)
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGINT, self.handle_signal)
            signal.signal(signal.SIGTERM, self.handle_signal)

        serve_thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)
        serve_thread.start()
        log(f"Running server on {host}:{port}...")

        self.shutdown_event.wait()
        self.stop()

    def handle_signal(self, signum, frame):
        log(f"Received signal {signal.Signals(signum).name}")
        self.shutdown_event.set()

    def stop(self, timeout: float = SHUTDOWN_TIMEOUT):
        if self.httpd is None:
            return
        log("Shutting down server...")
        self.httpd.shutdown()
        if not self.httpd.wait_for_requests(timeout):
            log(f"Requests still in flight after {timeout}s, closing anyway", "WARNING")
        self.httpd.server_close()
        self.httpd = None
        log("Server shutdown completed")
