# src/qr_image_pipeline/core/error_handling.py

import functools
import logging
from pathlib import Path
from typing import Any, Callable, Type, TypeVar, Union

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import QRImagePipelineError

F = TypeVar("F", bound=Callable[..., Any])


def wrap_errors(error_cls: Type[QRImagePipelineError], **error_kwargs: Any) -> Callable[[F], F]:
    """
    A decorator that maps any foreign exception onto ``error_cls``.

    Pipeline errors pass through untouched so callers further up can tell
    stages apart. boto errors keep their error code in the message.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__ + "." + func.__name__)
            try:
                return func(*args, **kwargs)
            except QRImagePipelineError:
                raise
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code", "Unknown")
                logger.error(f"AWS call failed in '{func.__name__}': {code}: {e}")
                raise error_cls(f"{func.__name__} failed with {code}: {e}", **error_kwargs) from e
            except BotoCoreError as e:
                logger.error(f"AWS client error in '{func.__name__}': {e}")
                raise error_cls(f"{func.__name__} failed: {e}", **error_kwargs) from e
            except Exception as e:
                logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
                raise error_cls(f"{func.__name__} failed: {e}", **error_kwargs) from e

        return wrapper  # type: ignore[return-value]

    return decorator


def is_not_found(error: ClientError) -> bool:
    """True for the 404-style responses S3 returns from HEAD requests."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    return code in ("404", "NoSuchKey", "NotFound")


def safe_unlink(path: Union[str, Path]) -> bool:
    """Delete ``path`` if it exists. Returns True when a file was removed."""
    logger = logging.getLogger(__name__ + ".safe_unlink")
    try:
        Path(path).unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Could not delete temporary file {path}: {e}")
        return False
