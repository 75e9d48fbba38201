"""
pdv/utils/logging.py
───────────────────
Configures structured logging for production.

app.logger is the 'pdv' logger (the app is named after the package),
so modules that log with logging.getLogger(__name__) outside a request
(finalizer, sale persistence, catalog provider) reach the same handlers.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import request, has_request_context


class RequestFormatter(logging.Formatter):
    """
    Custom formatter that injects request info (IP, URL) into logs
    if a request context is available.
    """
    def format(self, record):
        if has_request_context():
            record.url = request.url
            record.remote_addr = request.remote_addr
        else:
            record.url = None
            record.remote_addr = None
        return super().format(record)


def setup_logging(app):
    """
    Configure rotating file logging: logs/app.log
    Max size: 5MB
    Backup count: 5 files
    Format: timestamp | level | module | message
    """
    handlers = []

    # 1. File Logger (skipped when the filesystem is read-only)
    if not app.config.get('TESTING'):
        try:
            log_dir = os.path.join(app.root_path, '..', 'logs')
            os.makedirs(log_dir, exist_ok=True)

            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=5 * 1024 * 1024,
                backupCount=5
            )
            file_handler.setFormatter(RequestFormatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(remote_addr)s | %(url)s | %(message)s'
            ))
            file_handler.setLevel(logging.INFO)
            handlers.append(file_handler)
        except OSError:
            app.logger.warning("Log directory not writable; logging to stdout only.")

    # 2. Stdout Logger (Critical for cloud logs)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    ))
    stream_handler.setLevel(logging.INFO)
    handlers.append(stream_handler)

    # create_app may run many times (tests); don't stack handlers
    for handler in list(app.logger.handlers):
        app.logger.removeHandler(handler)

    for handler in handlers:
        app.logger.addHandler(handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info("PDV startup")
