from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from faker import Faker
from sqlalchemy.inspection import inspect
from sqlalchemy.orm import Session

from factory_sqlalchemy.builder.relationships import BuildsRelationships
from factory_sqlalchemy.config import DEFAULT_CONNECTION, SessionHandler
from factory_sqlalchemy.exceptions import FactoryNotDefinedError, UndefinedStateError
from factory_sqlalchemy.relations.orm import reload_relations
from factory_sqlalchemy.utils.common import call_with_supported_args, collect, flatten, get_logger, is_model

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from factory_sqlalchemy.factory import Factory

Definitions = dict[type, dict[str, Callable]]
States = dict[type, dict[str, Any]]
Callbacks = dict[type, dict[str, list[Callable]]]


class FactoryBuilder(BuildsRelationships):
    """모델 하나에 대한 fluent 팩토리 빌더.

    ``times``, ``states``, ``fill``, ``with_`` 등으로 설정한 뒤 ``raw``, ``make``, ``create`` 로 결과를 얻습니다.
    amount 가 None 이면 단일 모델을, 그렇지 않으면 리스트를 반환합니다.

    Example::

        company = factory.of(Company).with_("owner").with_(2, "divisions").create()
    """

    def __init__(
        self,
        model: type,
        name: str,
        definitions: Definitions,
        states: States,
        after_making: Callbacks,
        after_creating: Callbacks,
        faker: Faker,
        registry: Factory,
    ):
        self.model = model
        self.name = name
        self.faker = faker
        self.amount: int | None = None

        self._definitions = definitions
        self._states = states
        self._after_making = after_making
        self._after_creating = after_creating
        self._registry = registry

        self._active_states: list[str] = []
        self._attributes: dict[str, Any] = {}
        self._pivot_attributes: dict[str, Any] | Callable | None = None
        self._connection: str | None = None

        self.logger = get_logger()
        self._init_relations()

    # ===== 설정 =====

    def times(self, amount: int | None) -> FactoryBuilder:
        self.amount = amount
        return self

    def states(self, *states: str | list[str]) -> FactoryBuilder:
        for state in flatten(states):
            if state not in self._active_states:
                self._active_states.append(state)
        return self

    def state(self, state: str) -> FactoryBuilder:
        return self.states(state)

    def fill(self, attributes: dict[str, Any] | None = None, **kwargs: Any) -> FactoryBuilder:
        self._attributes.update(attributes or {}, **kwargs)
        return self

    def fill_pivot(self, attributes: dict[str, Any] | Callable) -> FactoryBuilder:
        """belongs-to-many 관계로 생성될 때 pivot(secondary) 테이블에 함께 저장할 속성을 지정합니다.

        callable 을 넘기면 연결되는 모델마다 ``(faker, model)`` 로 한 번씩 호출됩니다.
        """
        self._pivot_attributes = attributes
        return self

    def connection(self, name: str) -> FactoryBuilder:
        self._connection = name
        return self

    @property
    def connection_name(self) -> str:
        return self._connection or getattr(self.model, "__bind_key__", None) or DEFAULT_CONNECTION

    def resolve_session(self) -> Session:
        return SessionHandler().get_session(self.connection_name)

    # ===== 생성 =====

    def raw(self, attributes: dict[str, Any] | None = None) -> dict[str, Any] | list[dict[str, Any]]:
        attributes = attributes or {}
        if self.amount is None:
            return self._get_raw_attributes(attributes)
        return [self._get_raw_attributes(attributes) for _ in range(max(self.amount, 0))]

    def make(self, attributes: dict[str, Any] | None = None, *, session: Session | None = None) -> Any:
        """저장하지 않은 모델 인스턴스를 생성합니다.

        Args:
            attributes (dict[str, Any] | None): 정의와 상태 위에 덮어쓸 속성
            session (Session | None): 속성 값으로 주어진 빌더가 모델을 저장할 세션

        Returns:
            Any: amount 가 None 이면 모델 인스턴스, 그렇지 않으면 모델 리스트
        """
        attributes = attributes or {}
        if self.amount is None:
            instance = self._make_instance(attributes, session)
            self._call_after_making([instance])
            return instance

        instances = [self._make_instance(attributes, session) for _ in range(max(self.amount, 0))]
        self._call_after_making(instances)
        return instances

    def create(self, attributes: dict[str, Any] | None = None, *, session: Session | None = None) -> Any:
        """모델을 생성하고 관계와 함께 세션에 저장(flush)합니다.

        커밋은 하지 않습니다. 트랜잭션 경계는 호출하는 쪽이 관리합니다.

        Args:
            attributes (dict[str, Any] | None): 정의와 상태 위에 덮어쓸 속성
            session (Session | None): 사용할 세션. 없으면 커넥션 이름으로 SessionHandler 에서 찾습니다.

        Returns:
            Any: amount 가 None 이면 모델 인스턴스, 그렇지 않으면 모델 리스트
        """
        session = session or self.resolve_session()
        results = self.make(attributes, session=session)
        models = collect(results)

        self._store(models, session)
        self._call_after_creating(models)

        self.logger.debug(f"Created {len(models)} {self.model.__name__} model(s) on connection [{self.connection_name}]")
        return results

    async def acreate(self, attributes: dict[str, Any] | None = None, *, session: AsyncSession) -> Any:
        """AsyncSession 으로 모델을 생성합니다. 내부적으로 ``run_sync`` 안에서 ``create`` 를 실행합니다."""
        return await session.run_sync(lambda sync_session: self.create(attributes, session=sync_session))

    def lazy(self, attributes: dict[str, Any] | None = None) -> Callable[[], Any]:
        return lambda: self.create(attributes)

    def _store(self, models: list, session: Session) -> None:
        for index, model in enumerate(models):
            self._create_belongs_to(model, session)

            session.add(model)
            session.flush()

            # 주어진 자식 인스턴스는 첫 번째 부모에만 연결
            written = self._create_has_many(model, session, use_instances=index == 0)
            written += self._create_belongs_to_many(model, session)
            reload_relations(session, model, written)

    def _make_instance(self, attributes: dict[str, Any], session: Session | None = None) -> Any:
        return self.model(**self._get_raw_attributes(attributes, session))

    # ===== 속성 =====

    def _get_raw_attributes(self, attributes: dict[str, Any], session: Session | None = None) -> dict[str, Any]:
        definition = self._definitions.get(self.model, {}).get(self.name)
        if definition is None:
            raise FactoryNotDefinedError(self.model, self.name)

        base = call_with_supported_args(definition, self.faker, attributes)
        merged = {**self._apply_states(dict(base), attributes), **self._attributes, **attributes}
        return self._expand_attributes(merged, session)

    def _apply_states(self, definition: dict[str, Any], attributes: dict[str, Any]) -> dict[str, Any]:
        for state in self._active_states:
            if state not in self._states.get(self.model, {}):
                if self._state_has_after_callback(state):
                    continue
                raise UndefinedStateError(self.model, state)

            definition.update(self._state_attributes(state, attributes))
        return definition

    def _state_attributes(self, state: str, attributes: dict[str, Any]) -> dict[str, Any]:
        state_attributes = self._states[self.model][state]
        if callable(state_attributes):
            return call_with_supported_args(state_attributes, self.faker, attributes)
        return dict(state_attributes)

    def _expand_attributes(self, attributes: dict[str, Any], session: Session | None = None) -> dict[str, Any]:
        """callable, 빌더, 모델 값을 실제 값으로 변환합니다.

        callable 은 현재까지 변환된 속성 dict 를 받아 호출되고,
        빌더는 생성된 모델의 기본 키로, 모델 인스턴스는 기본 키로 치환됩니다.
        빌더가 이 빌더와 같은 커넥션을 쓰면 주어진 session 에 저장합니다.
        """
        for key, value in attributes.items():
            if callable(value) and not isinstance(value, type):
                value = call_with_supported_args(value, attributes)
            if isinstance(value, FactoryBuilder):
                value.inherit_connection(self)
                value = value.create(session=self._session_for(value, session))
            if is_model(value):
                value = self._primary_key(value)
            attributes[key] = value
        return attributes

    @staticmethod
    def _primary_key(model: Any) -> Any:
        state = inspect(model)
        if state.key is None:
            # 아직 flush 되지 않은 모델
            session = state.session
            if session is not None:
                session.flush([model])
        values = state.mapper.primary_key_from_instance(model)
        return values[0] if len(values) == 1 else tuple(values)

    def pivot_attributes_for(self, models: list) -> list[dict[str, Any]] | None:
        if self._pivot_attributes is None:
            return None
        if callable(self._pivot_attributes):
            return [dict(call_with_supported_args(self._pivot_attributes, self.faker, model)) for model in models]
        return [dict(self._pivot_attributes) for _ in models]

    # ===== 콜백 =====

    def _state_has_after_callback(self, state: str) -> bool:
        return state in self._after_making.get(self.model, {}) or state in self._after_creating.get(self.model, {})

    def _call_after_making(self, models: list) -> None:
        self._call_after(self._after_making, models)

    def _call_after_creating(self, models: list) -> None:
        self._call_after(self._after_creating, models)

    def _call_after(self, callbacks: Callbacks, models: list) -> None:
        registered = callbacks.get(self.model, {})
        for model in models:
            for state in [self.name, *self._active_states]:
                for callback in registered.get(state, []):
                    call_with_supported_args(callback, model, self.faker)
