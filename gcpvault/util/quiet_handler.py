import socket
import sys
import threading
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer

from gcpvault.util.logger import log

REQUEST_TIMEOUT = 30


class QuietHandler(WSGIRequestHandler):
    # applied to the client socket, so a silent or stalled client is dropped
    timeout = REQUEST_TIMEOUT

    # requests are logged by LoggingMiddleware
    def log_message(self, format, *args):
        pass


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """WSGI server handling each connection on its own thread, tracking the ones in flight."""
    daemon_threads = True
    block_on_close = False

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.in_flight = 0
        self.idle = threading.Condition()

    def process_request(self, request, client_address):
        with self.idle:
            self.in_flight += 1
        try:
            super().process_request(request, client_address)
        except Exception:
            self._finished()
            raise

    def process_request_thread(self, request, client_address):
        try:
            super().process_request_thread(request, client_address)
        finally:
            self._finished()

    def handle_error(self, request, client_address):
        error = sys.exc_info()[1]
        if isinstance(error, socket.timeout):
            log(f"Connection from {client_address[0]} timed out", "WARNING")
        else:
            log(f"Connection from {client_address[0]} failed: {error!r}", "ERROR")

    def wait_for_requests(self, timeout: float) -> bool:
        """Block until no request is in flight or timeout passes; True if drained."""
        with self.idle:
            return self.idle.wait_for(lambda: self.in_flight == 0, timeout)

    def _finished(self):
        with self.idle:
            self.in_flight -= 1
            self.idle.notify_all()
