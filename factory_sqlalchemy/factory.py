from __future__ import annotations

import importlib.util
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from faker import Faker

from factory_sqlalchemy.builder.base import Callbacks, Definitions, FactoryBuilder, States
from factory_sqlalchemy.utils.common import get_logger

DEFAULT_NAME = "default"


class Factory:
    """모델 클래스별 팩토리 정의, 상태, 콜백을 보관하는 레지스트리.

    Example::

        factory = Factory(locale="ko_KR", seed=1234)

        @factory.define(User)
        def user_definition(faker):
            return {"name": faker.name(), "email": faker.unique.email()}

        factory.state(User, "admin", {"is_admin": True})

        admin = factory.of(User).states("admin").create()
    """

    def __init__(self, faker: Faker | None = None, *, locale: str | list[str] | None = None, seed: int | None = None):
        self.faker = faker if faker is not None else Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)

        self._definitions: Definitions = {}
        self._states: States = {}
        self._after_making: Callbacks = {}
        self._after_creating: Callbacks = {}
        self.logger = get_logger()

    @classmethod
    def construct(cls, faker: Faker | None = None, path: str | os.PathLike | None = None, **kwargs: Any) -> Factory:
        """레지스트리를 생성하고 path 아래의 정의 파일을 불러옵니다."""
        instance = cls(faker, **kwargs)
        if path is not None:
            instance.load(path)
        return instance

    def define(self, model: type, definition: Callable | None = None, name: str = DEFAULT_NAME):
        """모델의 팩토리 정의를 등록합니다.

        정의는 ``(faker)`` 또는 ``(faker, attributes)`` 를 받아 속성 dict 를 반환하는 callable 입니다.
        definition 을 생략하면 데코레이터로 사용할 수 있습니다.

        Args:
            model (type): SQLAlchemy 모델 클래스
            definition (Callable | None): 속성 dict 를 반환하는 callable
            name (str): 정의 이름 (기본값: "default")

        Returns:
            Factory | Callable: definition 이 주어지면 self, 아니면 데코레이터
        """
        if definition is None:

            def decorator(func: Callable) -> Callable:
                self.define(model, func, name)
                return func

            return decorator

        self._definitions.setdefault(model, {})[name] = definition
        return self

    def state(self, model: type, state: str, attributes: dict[str, Any] | Callable) -> Factory:
        self._states.setdefault(model, {})[state] = attributes
        return self

    def after_making(self, model: type, callback: Callable, name: str = DEFAULT_NAME) -> Factory:
        self._after_making.setdefault(model, {}).setdefault(name, []).append(callback)
        return self

    def after_making_state(self, model: type, state: str, callback: Callable) -> Factory:
        return self.after_making(model, callback, state)

    def after_creating(self, model: type, callback: Callable, name: str = DEFAULT_NAME) -> Factory:
        self._after_creating.setdefault(model, {}).setdefault(name, []).append(callback)
        return self

    def after_creating_state(self, model: type, state: str, callback: Callable) -> Factory:
        return self.after_creating(model, callback, state)

    def defines(self, model: type, name: str = DEFAULT_NAME) -> bool:
        return name in self._definitions.get(model, {})

    def load(self, path: str | os.PathLike) -> Factory:
        """path 아래의 모든 ``.py`` 정의 파일을 실행합니다.

        각 파일의 모듈 네임스페이스에는 ``factory`` 라는 이름으로 이 레지스트리가 주입됩니다.
        경로가 없으면 아무 것도 하지 않습니다.
        """
        path = Path(path)
        if not path.is_dir():
            return self

        for index, file in enumerate(sorted(path.rglob("*.py"))):
            module_name = f"_factory_definitions_{index}_{file.stem}"
            spec = importlib.util.spec_from_file_location(module_name, file)
            module = importlib.util.module_from_spec(spec)
            module.factory = self
            spec.loader.exec_module(module)
            self.logger.debug(f"Loaded factory definitions from {file}")

        return self

    def of(self, model: type, name: str = DEFAULT_NAME) -> FactoryBuilder:
        return FactoryBuilder(
            model,
            name,
            self._definitions,
            self._states,
            self._after_making,
            self._after_creating,
            self.faker,
            self,
        )

    def raw(self, model: type, attributes: dict[str, Any] | None = None, name: str = DEFAULT_NAME) -> dict[str, Any]:
        return self.of(model, name).raw(attributes)

    def make(self, model: type, attributes: dict[str, Any] | None = None, name: str = DEFAULT_NAME) -> Any:
        return self.of(model, name).make(attributes)

    def create(self, model: type, attributes: dict[str, Any] | None = None, name: str = DEFAULT_NAME) -> Any:
        return self.of(model, name).create(attributes)


_default_factory: Factory | None = None


def get_factory() -> Factory:
    global _default_factory
    if _default_factory is None:
        _default_factory = Factory()
    return _default_factory


def set_factory(registry: Factory | None) -> None:
    global _default_factory
    _default_factory = registry


def factory(model: type, *args: Any) -> FactoryBuilder:
    """기본 레지스트리에서 빌더를 얻습니다.

    ``factory(User)``, ``factory(User, 3)``, ``factory(User, "admin")``, ``factory(User, "admin", 3)``
    """
    name = DEFAULT_NAME
    if args and isinstance(args[0], str):
        name, args = args[0], args[1:]

    builder = get_factory().of(model, name)
    if args:
        builder.times(args[0])
    return builder
