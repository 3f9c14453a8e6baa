import os
import logging
from logging.handlers import TimedRotatingFileHandler, SMTPHandler
import gzip
import glob
import time
import re
from datetime import datetime
from collections import defaultdict
import click
from flask.cli import with_appcontext

LOG_FORMAT = "%(asctime)s [%(levelname)s] in %(module)s: %(message)s"
ACCESS_FORMAT = "%(asctime)s - %(message)s"

# Marks handlers installed here so a second app in the same process replaces them
_HANDLER_TAG = "_orders_service_handler"


def _tagged(handler):
    setattr(handler, _HANDLER_TAG, True)
    return handler


def _reset(logger):
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            logger.removeHandler(handler)
            handler.close()


def _daily_file(log_dir, name, backup_count, formatter, level):
    handler = TimedRotatingFileHandler(
        os.path.join(log_dir, name), when="midnight", interval=1,
        backupCount=backup_count, encoding="utf-8", delay=True
    )
    handler.suffix = "%Y-%m-%d"
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return _tagged(handler)


def _console(formatter):
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.setLevel(logging.INFO)
    return _tagged(handler)


# ==================================================
# LOGGING SETUP
# ==================================================
def setup_logging(app):
    """Configure logging for the Flask app."""
    # Prevent duplicate log handlers when Flask auto-reloads
    if getattr(app, "_logging_configured", False):
        return app.logger
    app._logging_configured = True

    log_dir = app.config.get("LOG_DIR", "logs")
    to_files = app.config.get("LOG_TO_FILES", True)
    if to_files:
        os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)
    access_formatter = logging.Formatter(ACCESS_FORMAT)

    # -------------------------
    # APPLICATION LOGGER
    # -------------------------
    app_handlers = [_console(formatter)]
    if to_files:
        app_handlers.append(_daily_file(log_dir, "app.log", 14, formatter, logging.INFO))
        app_handlers.append(_daily_file(log_dir, "error.log", 30, formatter, logging.ERROR))

    app_logger = app.logger
    app_logger.setLevel(logging.INFO)
    app_logger.propagate = False
    _reset(app_logger)

    # Module loggers (Services.*, Controllers.*, Utils.*) reach the same handlers via root
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    _reset(root_logger)

    for handler in app_handlers:
        app_logger.addHandler(handler)
        root_logger.addHandler(handler)

    # -------------------------
    # ACCESS LOGGER
    # -------------------------
    access_logger = logging.getLogger("access")
    access_logger.setLevel(logging.INFO)
    access_logger.propagate = False
    _reset(access_logger)
    # Mirror access logs to console so the platform captures them
    access_logger.addHandler(_console(access_formatter))
    if to_files:
        access_logger.addHandler(_daily_file(log_dir, "access.log", 7, access_formatter, logging.INFO))

    # -------------------------
    # ORDER AUDIT LOGGER
    # -------------------------
    # Every lifecycle and settlement transition lands here
    orders_logger = logging.getLogger("orders")
    orders_logger.setLevel(logging.INFO)
    orders_logger.propagate = False
    _reset(orders_logger)
    orders_logger.addHandler(_console(formatter))
    if to_files:
        orders_logger.addHandler(_daily_file(log_dir, "orders.log", 30, formatter, logging.INFO))

    # -------------------------
    # EMAIL ALERTS (OPT-IN)
    # -------------------------
    if app.config.get("ENABLE_SMTP_ALERTS") and not app.debug:
        try:
            mail_handler = SMTPHandler(
                mailhost=(app.config["SMTP_HOST"], int(app.config["SMTP_PORT"])),
                fromaddr=app.config["SMTP_FROM"],
                toaddrs=[addr.strip() for addr in app.config["SMTP_TO"].split(",") if addr.strip()],
                subject="🚨 Order Service Critical Error",
                credentials=(app.config.get("SMTP_USER"), app.config.get("SMTP_PASS")),
                secure=()
            )
            mail_handler.setLevel(logging.ERROR)
            mail_handler.setFormatter(formatter)
            app_logger.addHandler(_tagged(mail_handler))
        except Exception as e:
            app_logger.warning(f"SMTP alerts disabled due to configuration error: {e}")

    # -------------------------
    # LOG HOOKS & TASKS
    # -------------------------
    register_access_log_hook(app, access_logger)
    if to_files:
        cleanup_old_logs(app, log_dir)
    register_log_summary_command(app)

    app_logger.info("🚀 Logging initialized successfully.")
    return app_logger


# ==================================================
# ACCESS LOGGING
# ==================================================
def register_access_log_hook(app, access_logger):
    """Logs each incoming request (IP, method, URL) into access.log."""
    from flask import request

    @app.before_request
    def log_request_info():
        access_logger.info(f"{request.remote_addr} {request.method} {request.url}")


# ==================================================
# OLD LOG CLEANUP & COMPRESSION
# ==================================================
def cleanup_old_logs(app, folder="logs", days=7):
    """Compress rotated logs and delete compressed logs older than ``days``."""
    now = time.time()
    for log_file in glob.glob(os.path.join(folder, "*.log.*")):
        if log_file.endswith(".gz"):
            continue
        try:
            with open(log_file, "rb") as f_in:
                with gzip.open(f"{log_file}.gz", "wb") as f_out:
                    f_out.writelines(f_in)
            os.remove(log_file)
            app.logger.info(f"🗜️ Compressed log: {log_file}")
        except OSError as e:
            app.logger.error(f"❌ Failed to compress {log_file}: {e}")

    for gz_file in glob.glob(os.path.join(folder, "*.gz")):
        if os.stat(gz_file).st_mtime < now - days * 86400:
            os.remove(gz_file)
            app.logger.info(f"🧹 Deleted old log: {gz_file}")


# ==================================================
# CLI LOG SUMMARY COMMAND
# ==================================================
LOG_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2}).*\[(INFO|ERROR|WARNING)\]")


def summarize_log_dir(log_dir, days, now=None):
    """Count INFO/WARNING/ERROR lines per day across app, error and order logs."""
    summary = defaultdict(lambda: {"INFO": 0, "ERROR": 0, "WARNING": 0})
    now = now or datetime.now()
    if not os.path.isdir(log_dir):
        return summary

    for filename in os.listdir(log_dir):
        if not filename.startswith(("app.log", "error.log", "orders.log")):
            continue

        path = os.path.join(log_dir, filename)
        mtime = datetime.fromtimestamp(os.path.getmtime(path))
        if (now - mtime).days > days:
            continue

        opener = gzip.open if filename.endswith(".gz") else open
        with opener(path, "rt", encoding="utf-8", errors="ignore") as f:
            for line in f:
                match = LOG_PATTERN.match(line)
                if match:
                    date_str, level = match.groups()
                    summary[date_str][level] += 1
    return summary


def register_log_summary_command(app):
    """Adds 'flask logs:summary' CLI command to view log stats."""

    @click.command("logs:summary")
    @with_appcontext
    @click.option("--days", default=7, help="Days of logs to summarize")
    def summarize_logs(days):
        summary = summarize_log_dir(app.config.get("LOG_DIR", "logs"), days)

        if not summary:
            click.echo("No log entries found in the specified time range.")
            return

        click.echo("\n📊 Log Summary\n──────────────────────────────")
        total_info = total_error = total_warn = 0

        for date_str in sorted(summary.keys()):
            counts = summary[date_str]
            total_info += counts["INFO"]
            total_error += counts["ERROR"]
            total_warn += counts["WARNING"]
            click.echo(
                f"{date_str}  INFO: {counts['INFO']:<5}  WARNING: {counts['WARNING']:<5}  ERROR: {counts['ERROR']:<5}"
            )

        click.echo("──────────────────────────────")
        click.echo(
            f"Total INFO: {total_info}   WARNING: {total_warn}   ERROR: {total_error}"
        )

    app.cli.add_command(summarize_logs)
