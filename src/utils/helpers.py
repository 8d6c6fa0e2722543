"""Best-effort execution helpers.

Used wherever a failure should be logged and replaced by a fallback value
instead of reaching the caller: image enhancement keeps the stock photo,
tip strategies hand over to the next level, and data URI decoding drops a
payload that is not an image.
"""

from src.utils.logger import logger


def _log_failure(operation_name: str, exception: Exception, log_level: str) -> None:
    # Unknown levels fall through to warning
    log = {"debug": logger.debug, "error": logger.error}.get(log_level, logger.warning)
    log(f"{operation_name}: {exception}")


async def safe_execute_async(coro, operation_name: str, log_level: str = "warning", default_return=None):
    """Await coro, returning default_return if it raises.

    Args:
        coro: Coroutine to await.
        operation_name: Short description used in the log line.
        log_level: "debug", "warning" or "error".
        default_return: Value returned when the coroutine fails.

    Example:
        image = await safe_execute_async(client.generate_image(title, names), "Recipe image")
    """
    try:
        return await coro
    except Exception as e:
        _log_failure(operation_name, e, log_level)
        return default_return


def safe_execute_sync(func, operation_name: str, log_level: str = "warning", default_return=None):
    """Call func() with no arguments, returning default_return if it raises."""
    try:
        return func()
    except Exception as e:
        _log_failure(operation_name, e, log_level)
        return default_return
