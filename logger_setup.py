import os
import logging
import sys
import traceback
from datetime import datetime

LOG_FORMAT = '%(asctime)s [%(levelname)s] [%(name)s:%(lineno)d] %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def setup_logger(name, log_prefix='sharing_reset', log_dir='logs'):
    """
    Set up a logger with file and console handlers.
    File: {log_dir}/{prefix}_{timestamp}.log (DEBUG level)
    Console: stdout (INFO level)
    Passing name=None configures the root logger so module loggers
    (traversal_engine, permission_reset, ...) share the handlers.
    """
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_filename = os.path.join(log_dir, f"{log_prefix}_{timestamp}.log")

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers if already setup
    if not logger.handlers:
        try:
            file_handler = logging.FileHandler(log_filename, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
            logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Could not create log file {log_filename}: {e}")

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger, log_filename

def format_api_error(e):
    """
    Format a storage API error for logging.
    Follows the exception chain so provider errors show the SDK cause
    (Google HttpError status/reason, Dropbox ApiError detail and request id).
    """
    error_msg = f"API Error: {str(e)}"
    cause = e.__cause__ or e

    try:
        resp = getattr(cause, 'resp', None)
        if resp is not None and hasattr(resp, 'status'):
            error_msg += f"\n  - HTTP Status: {resp.status}"
            reason = getattr(cause, "reason", None)
            if reason:
                error_msg += f"\n  - Reason: {reason}"

        if hasattr(cause, 'error') and cause.error is not None:
            error_msg += f"\n  - Error Detail: {cause.error}"

        if hasattr(cause, 'user_message_text') and cause.user_message_text:
            error_msg += f"\n  - User Message: {cause.user_message_text}"

        if hasattr(cause, 'request_id') and cause.request_id:
            error_msg += f"\n  - Request ID: {cause.request_id}"
    except Exception as formatting_err:
        error_msg += f" (Note: Error while formatting detailed error: {formatting_err})"

    return error_msg

def log_exception(logger, message, exc=None):
    """Helper to log an exception with full context."""
    if exc:
        logger.error(f"{message}: {format_api_error(exc)}")
        logger.debug(traceback.format_exc())
    else:
        logger.exception(message)
