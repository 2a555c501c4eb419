import sys

from gcpvault.util.logger import log
from gcpvault.util.server import Server

if __name__ == '__main__':
    exit_code = 0
    try:
        server = Server()
        server.run()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        log(f'Error: {e}', "ERROR")
        exit_code = 1
    finally:
        log('Shutting down...')
    sys.exit(exit_code)
