"""Translate pipeline errors into HTTP responses."""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from fastapi import HTTPException, status

from ..errors import BatchInProgress, InvalidFormat, StopNotFound, ValidationError

T = TypeVar("T")


def run_action(description: str, action: Callable[[], T]) -> T:
    try:
        return action()
    except (ValidationError, InvalidFormat) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StopNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except BatchInProgress as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error while trying to {description}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {description}: {str(exc)}",
        ) from exc
