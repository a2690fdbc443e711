import json
import sys
import traceback

import loguru
from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<bold><white>{message}</white></bold> | <dim>{extra_json}</dim> {stacktrace}"
)


# Logger configuration runs when the package is imported -- src/wfp_action/__init__.py
def configure_logger(level: str = "INFO", sink=sys.stdout):
    """
    Configure loguru logger with a single console sink.

    The scheduler collects stdout, so no other sinks are added here.

    Args:
        level: Minimum log level for the sink
        sink: Destination of formatted records (stdout by default)
    """
    logger.remove()  # remove the default logger

    logger.add(
        sink=sink,
        level=level,
        diagnose=False,
        format=LOG_FORMAT,
        filter=process_log_record,
    )


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before they are passed to the formatter.

    For instance,

    1. Serialize the "extra" field to JSON (as "extra_json") so that it renders on a single line in the scheduler logs.
    2. For error logs, add a traceback with \r instead of \n so that the log collector does not
       split the traceback into multiple log events.
    """
    extra = record["extra"]

    # serialize "extra" field to JSON; the dict itself stays intact for other sinks
    record["extra_json"] = json.dumps(extra, default=str) if extra else ""

    # add stacktrace to log record
    record["stacktrace"] = ""
    if record["exception"]:
        err = record["exception"]
        stacktrace = get_formatted_stacktrace(err, replace_newline_character_with_carriage_return=True)
        record["stacktrace"] = stacktrace

    return record


def get_formatted_stacktrace(loguru_record_exception, replace_newline_character_with_carriage_return: bool) -> str:
    """Get the formatted stacktrace for the current exception."""
    exc_type, exc_value, exc_traceback = loguru_record_exception
    stacktrace_: list[str] = traceback.format_exception(exc_type, exc_value, exc_traceback)
    stacktrace: str = "".join(stacktrace_)
    if replace_newline_character_with_carriage_return:
        stacktrace = stacktrace.replace("\n", "\r")
    return stacktrace
