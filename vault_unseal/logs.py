import sys

from loguru import logger

from vault_unseal.constants import LogLevel

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | <magenta>{extra[node]}</magenta> - <level>{message}</level>"
)


def init_log(level: LogLevel = LogLevel.INFO, as_json: bool = False, sink=sys.stderr):
    """
    Replace the default loguru handler with one using the configured level and output format

    :param level: minimum level of the emitted records
    :param as_json: serialize every record as a json object instead of a formatted line
    :param sink: where to write the records to
    """
    logger.remove()
    logger.configure(extra={"node": "-"})
    logger.add(
        sink,
        level=LogLevel(level).loguru_level(),
        format=LOG_FORMAT,
        serialize=as_json,
        backtrace=False,
        diagnose=False,
    )
