from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from factory_sqlalchemy.enums import RelationType
from factory_sqlalchemy.relations.orm import associate, foreign_key_attributes, relation_type, save_many
from factory_sqlalchemy.relations.request import RelationRequest
from factory_sqlalchemy.utils.common import collect, is_model_collection

if TYPE_CHECKING:
    from factory_sqlalchemy.builder.base import FactoryBuilder


class BuildsRelationships:
    """FactoryBuilder 의 관계 생성 기능.

    관계 빌더는 ``{관계 이름: {배치 번호: FactoryBuilder}}`` 형태로 보관되며,
    미리 주어진 인스턴스는 같은 키 구조로 ``_instances`` 에 보관됩니다.
    """

    model: type
    amount: int | None
    logger: logging.Logger

    def _init_relations(self) -> None:
        self._relations_batch_index = 0
        self._relations: dict[str, dict[int, FactoryBuilder]] = {}
        self._instances: dict[str, dict[int, list]] = {}

    def with_(self, *args: Any) -> FactoryBuilder:
        """관계를 함께 생성하도록 요청합니다.

        ``with_(2, "divisions")``, ``with_("owner", user)``, ``with_(3, "active", "divisions")``,
        ``with_("divisions.manager")`` 처럼 인자를 순서 없이 받습니다.
        dict 를 넘기면 ``{"divisions": 2, "divisions.manager": None}`` 의 각 항목이
        ``with_(key, value)`` 로 처리되고, list 를 넘기면 각 항목이 다시 ``with_`` 로 처리됩니다.
        """
        if len(args) == 1:
            arg = args[0]
            if isinstance(arg, RelationRequest):
                return self.load_relation(arg)

            if isinstance(arg, dict):
                for key, value in arg.items():
                    if value is None:
                        self.with_(key)
                    elif isinstance(value, tuple):
                        self.with_(key, *value)
                    else:
                        self.with_(key, value)
                return self

            if isinstance(arg, list) and arg and not is_model_collection(arg):
                for item in arg:
                    if isinstance(item, tuple):
                        self.with_(*item)
                    else:
                        self.with_(item)
                return self

        return self.load_relation(RelationRequest(self.model, self._relations_batch_index, args))

    def and_with(self, *args: Any) -> FactoryBuilder:
        """새 배치를 시작해서 같은 관계를 한 번 더 생성합니다."""
        return self._new_batch().with_(*args)

    def load_relation(self, request: RelationRequest) -> FactoryBuilder:
        factory = self._build_factory_for_request(request)

        if request.has_nesting():
            factory.with_(request.create_nested_request())
        else:
            factory.states(request.states)

            if request.amount is not None:
                factory.times(request.amount)

            if request.builder is not None:
                request.builder(factory)

            if request.instances is not None:
                self._instances.setdefault(request.relation_name, {})[request.batch] = request.instances

        return self

    def _build_factory_for_request(self, request: RelationRequest) -> FactoryBuilder:
        batches = self._relations.setdefault(request.relation_name, {})
        if request.batch not in batches:
            batches[request.batch] = self._registry.of(request.related_model)
        return batches[request.batch]

    def _relations_of_type(self, type_: RelationType) -> list[tuple[str, dict[int, FactoryBuilder]]]:
        return [
            (relation, batches)
            for relation, batches in self._relations.items()
            if relation_type(self.model, relation) is type_
        ]

    def _create_belongs_to(self, child: Any, session: Session) -> None:
        for relation, batches in self._relations_of_type(RelationType.BELONGS_TO):
            # belongs-to 는 부모가 하나뿐이므로 첫 번째 배치만 사용
            batch, factory = next(iter(batches.items()))
            parents = self._fetch_from_instances_or_create(relation, batch, factory.times(1), session)
            associate(child, relation, parents[0], session)
            self.logger.debug(f"Associated {self.model.__name__}.{relation} with {type(parents[0]).__name__}")

    def _create_has_many(self, parent: Any, session: Session, use_instances: bool = True) -> list[str]:
        """has-one / has-many 관계의 자식 모델을 부모의 외래키로 생성합니다.

        use_instances 가 False 이면 미리 주어진 인스턴스를 무시하고 새로 생성합니다.
        """
        relations = self._relations_of_type(RelationType.HAS_ONE_OR_MANY)
        for relation, batches in relations:
            foreign_keys = foreign_key_attributes(parent, relation)
            for batch, factory in batches.items():
                factory.inherit_connection(self)
                child_session = self._session_for(factory, session)
                instances = self._instances.get(relation, {}).get(batch) if use_instances else None

                if instances is None:
                    children = collect(factory.create(foreign_keys, session=child_session))
                else:
                    children = factory.top_up(instances, foreign_keys, session=child_session)
                    target_session = child_session or factory.resolve_session()
                    for child in children:
                        for key, value in foreign_keys.items():
                            setattr(child, key, value)
                    target_session.add_all(children)
                    target_session.flush()

                self.logger.debug(
                    f"Saved {len(children)} {factory.model.__name__} model(s) to {self.model.__name__}.{relation}"
                )

        return [relation for relation, _ in relations]

    def _create_belongs_to_many(self, sibling: Any, session: Session) -> list[str]:
        relations = self._relations_of_type(RelationType.BELONGS_TO_MANY)
        for relation, batches in relations:
            for batch, factory in batches.items():
                models = self._fetch_from_instances_or_create(relation, batch, factory, session)
                save_many(sibling, relation, models, session, factory.pivot_attributes_for(models))
                self.logger.debug(
                    f"Attached {len(models)} {factory.model.__name__} model(s) to {self.model.__name__}.{relation}"
                )

        return [relation for relation, _ in relations]

    def _fetch_from_instances_or_create(
        self, relation: str, batch: int, factory: FactoryBuilder, session: Session
    ) -> list:
        """미리 주어진 인스턴스를 사용하고, 부족한 만큼만 팩토리로 생성합니다."""
        factory.inherit_connection(self)
        instances = self._instances.get(relation, {}).get(batch)
        return factory.top_up(instances, session=self._session_for(factory, session))

    def _session_for(self, factory: FactoryBuilder, session: Session) -> Session | None:
        """관계 빌더가 같은 커넥션을 쓰면 현재 세션을 그대로 넘깁니다."""
        if factory.connection_name == self.connection_name:
            return session
        return None

    def top_up(
        self, models: Any, attributes: dict[str, Any] | None = None, *, session: Session | None = None
    ) -> list:
        """모델 목록을 지정된 개수(amount, 기본 1)에 맞춰 채우거나 잘라냅니다.

        Args:
            models (Any): 단일 모델, 모델 목록 또는 None
            attributes (dict[str, Any] | None): 부족한 모델을 생성할 때 사용할 속성
            session (Session | None): 부족한 모델을 생성할 세션

        Returns:
            list: 정확히 amount 개의 모델
        """
        models = collect(models)
        target = self.amount if self.amount is not None else 1

        missing = target - len(models)
        if missing > 0:
            original_amount = self.amount
            models = models + collect(self.times(missing).create(attributes, session=session))
            self.amount = original_amount

        return models[:target]

    def inherit_connection(self, factory: FactoryBuilder) -> FactoryBuilder:
        """커넥션이 지정되지 않았고 모델에도 ``__bind_key__`` 가 없으면 부모 빌더의 커넥션을 따릅니다."""
        if self._connection is None and getattr(self.model, "__bind_key__", None) is None:
            self._connection = factory._connection
        return self

    def _new_batch(self) -> FactoryBuilder:
        self._relations_batch_index += 1
        return self
