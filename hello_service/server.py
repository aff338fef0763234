import argparse
import logging

import uvicorn
from prometheus_client import start_http_server

from .app import create_app
from .config import VARIANTS, load_settings
from .cpu_task import LOAD_MODES

logger = logging.getLogger("hello_service")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Minimal /hello JSON server")
    parser.add_argument(
        "--variant", choices=VARIANTS, help="hello (plain) or fib (simulates CPU load per request)"
    )
    parser.add_argument("--host", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument(
        "-p", "--port", type=int, help="Port to listen on (default: 8000, or 8081 for the fib variant)"
    )
    parser.add_argument("--fib-n", type=int, help="Fibonacci argument computed per request (default: 35)")
    parser.add_argument(
        "--load-mode", choices=LOAD_MODES, help="Where the load simulation runs (default: inline)"
    )
    parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    try:
        settings = load_settings().override(
            variant=args.variant,
            host=args.host,
            port=args.port,
            fib_n=args.fib_n,
            load_mode=args.load_mode,
            metrics_port=args.metrics_port,
        )
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error("Invalid configuration: %s", e)
        raise

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(process)d] [%(levelname)s] %(message)s",
    )

    if settings.metrics_port is not None:
        start_http_server(settings.metrics_port)
        logger.info("Metrics exposed on :%d", settings.metrics_port)

    app = create_app(settings)
    logger.info("Listening on http://%s:%d", settings.host, settings.listen_port)
    # one worker, one event loop: the load simulation shares it with every connection
    uvicorn.run(app, host=settings.host, port=settings.listen_port, workers=1, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
