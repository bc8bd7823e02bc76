from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm.state import InstanceState

LOGGER_NAME = "factory_sqlalchemy"


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def is_model(obj: Any) -> bool:
    """매핑된 SQLAlchemy 모델 인스턴스인지 확인합니다."""
    if isinstance(obj, type):
        return False
    return isinstance(sa_inspect(obj, raiseerr=False), InstanceState)


def is_model_collection(obj: Any) -> bool:
    return isinstance(obj, (list, tuple)) and all(is_model(item) for item in obj)


def collect(models: Any) -> list:
    """단일 모델, 모델 목록, None 을 리스트로 변환합니다."""
    if models is None:
        return []
    if is_model(models):
        return [models]
    return list(models)


def flatten(values: Iterable[Any]) -> list:
    result = []
    for value in values:
        if isinstance(value, (list, tuple, set)):
            result.extend(flatten(value))
        else:
            result.append(value)
    return result


def call_with_supported_args(func: Callable, *args: Any) -> Any:
    """함수가 받을 수 있는 만큼의 위치 인자만 넘겨서 호출합니다.

    정의(definition), 상태(state), pivot 클로저를 ``lambda faker: ...`` 또는
    ``lambda faker, attributes: ...`` 어느 형태로든 작성할 수 있게 합니다.

    Args:
        func (Callable): 호출할 함수
        *args (Any): 넘길 수 있는 인자들 (앞에서부터 잘라서 사용)

    Returns:
        Any: 함수 호출 결과
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return func(*args)

    params = signature.parameters.values()
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params):
        return func(*args)

    positional = [
        p for p in params if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    return func(*args[: len(positional)])
