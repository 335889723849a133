from __future__ import annotations

import logging
import sys

from flask import Flask, jsonify

from news_monitor import MonitorConfig, MonitorService
from news_monitor.errors import ConfigurationError
from news_monitor.logs import configure_logging

logger = logging.getLogger(__name__)


def create_app(service: MonitorService) -> Flask:
    app = Flask(__name__)

    @app.get("/health")
    def healthcheck():
        if not service.is_running:
            return jsonify({"status": "stopped"}), 503
        return {"status": "ok"}

    @app.get("/status")
    def status():
        try:
            return jsonify(service.status())
        except Exception as exc:  # pragma: no cover - runtime guard
            app.logger.exception("Uncaught exception when handling /status")
            return jsonify({"error": "Unexpected server error", "detail": str(exc)}), 500

    return app


def main() -> int:
    try:
        config = MonitorConfig.from_env()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.log_level, config.log_file)

    try:
        service = MonitorService(config)
    except Exception as exc:
        logger.error("Failed to start news monitor: %s", exc)
        return 1

    # must precede start(), which runs the first cycle synchronously
    service.install_signal_handlers()
    try:
        service.start()
    except Exception as exc:
        logger.error("Failed to start news monitor: %s", exc)
        return 1

    try:
        if config.port:
            logger.info("Serving health endpoint on port %d", config.port)
            create_app(service).run(host="0.0.0.0", port=config.port, use_reloader=False)
        else:
            service.wait()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        service.shutdown()
    return service.exit_code


if __name__ == "__main__":
    sys.exit(main())
