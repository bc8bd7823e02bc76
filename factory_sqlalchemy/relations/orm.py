"""
SQLAlchemy 관계(relationship) 메타데이터 조회 및 관계 저장 헬퍼

모든 저장은 ORM 에 위임합니다. belongs-to 는 관계 속성 대입, has-many 는 외래키 값 전달,
belongs-to-many 는 컬렉션 추가 또는 secondary 테이블 insert 로 처리합니다.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.inspection import inspect
from sqlalchemy.orm import Mapper, Session, object_session
from sqlalchemy.orm.interfaces import MANYTOMANY, MANYTOONE, ONETOMANY
from sqlalchemy.orm.relationships import RelationshipProperty
from sqlalchemy.sql.schema import Column

from factory_sqlalchemy.enums import RelationType
from factory_sqlalchemy.exceptions import RelationNotFoundError
from factory_sqlalchemy.utils.common import get_logger

_DIRECTION_TO_TYPE = {
    MANYTOONE: RelationType.BELONGS_TO,
    ONETOMANY: RelationType.HAS_ONE_OR_MANY,
    MANYTOMANY: RelationType.BELONGS_TO_MANY,
}

logger = get_logger()


def get_relationship(model_cls: type, name: str) -> RelationshipProperty | None:
    relationships = inspect(model_cls).relationships
    if name in relationships:
        return relationships[name]
    return None


def has_relationship(model_cls: type, name: str) -> bool:
    return get_relationship(model_cls, name) is not None


def relation_type(model_cls: type, name: str) -> RelationType:
    """관계의 방향(direction)으로 관계 종류를 판단합니다.

    Args:
        model_cls (type): 관계를 가진 모델 클래스
        name (str): 관계 속성 이름

    Returns:
        RelationType: MANYTOONE 은 BELONGS_TO, ONETOMANY 는 HAS_ONE_OR_MANY, MANYTOMANY 는 BELONGS_TO_MANY

    Raises:
        RelationNotFoundError: 모델에 해당 이름의 관계가 없는 경우
    """
    relationship = get_relationship(model_cls, name)
    if relationship is None:
        raise RelationNotFoundError(model_cls, (name,))
    return _DIRECTION_TO_TYPE[relationship.direction]


def related_model(model_cls: type, name: str) -> type:
    return get_relationship(model_cls, name).mapper.class_


def _attribute_value(model: Any, column: Column) -> Any:
    mapper: Mapper = inspect(model).mapper
    return getattr(model, mapper.get_property_by_column(column).key)


def _attribute_key(mapper: Mapper, column: Column) -> str:
    return mapper.get_property_by_column(column).key


def associate(child: Any, name: str, parent: Any, session: Session) -> None:
    """belongs-to 관계에 부모 모델을 연결합니다.

    부모가 다른 세션에 속해 있으면 관계 속성 대신 외래키 값만 복사합니다.
    """
    parent_session = object_session(parent)
    if parent_session is None or parent_session is session:
        setattr(child, name, parent)
        return

    relationship = get_relationship(inspect(child).mapper.class_, name)
    child_mapper: Mapper = inspect(child).mapper
    for parent_column, child_column in relationship.synchronize_pairs:
        setattr(child, _attribute_key(child_mapper, child_column), _attribute_value(parent, parent_column))


def foreign_key_attributes(parent: Any, name: str) -> dict[str, Any]:
    """has-one / has-many 관계의 자식 모델에 채워야 할 외래키 속성을 반환합니다.

    부모는 이미 flush 되어 기본 키가 있어야 합니다.
    """
    relationship = get_relationship(inspect(parent).mapper.class_, name)
    return {
        _attribute_key(relationship.mapper, child_column): _attribute_value(parent, parent_column)
        for parent_column, child_column in relationship.synchronize_pairs
    }


def save_many(
    parent: Any,
    name: str,
    models: list,
    session: Session,
    pivot: list[dict[str, Any]] | None = None,
) -> None:
    """belongs-to-many 관계에 모델들을 저장합니다.

    pivot 속성이 없으면 관계 컬렉션에 추가하고 flush 합니다.
    pivot 속성이 있으면 secondary 테이블에 직접 insert 합니다. (ORM 컬렉션은 추가 컬럼을 모름)

    Args:
        parent (Any): 관계를 가진 모델 인스턴스
        name (str): 관계 속성 이름
        models (list): 연결할 모델 목록
        session (Session): 사용할 세션
        pivot (list[dict[str, Any]] | None): 모델마다 하나씩 대응하는 pivot 속성
    """
    if not models:
        return

    if pivot is None:
        getattr(parent, name).extend(models)
        session.flush()
        return

    relationship = get_relationship(inspect(parent).mapper.class_, name)
    session.add_all(models)
    session.flush()

    rows = []
    for model, attributes in zip(models, pivot):
        row = {
            secondary_column.key: _attribute_value(parent, parent_column)
            for parent_column, secondary_column in relationship.synchronize_pairs
        }
        row.update(
            {
                secondary_column.key: _attribute_value(model, target_column)
                for target_column, secondary_column in relationship.secondary_synchronize_pairs
            }
        )
        row.update(attributes)
        rows.append(row)

    session.execute(relationship.secondary.insert(), rows)
    session.refresh(parent, attribute_names=[name])
    logger.debug(f"Inserted {len(rows)} rows into {relationship.secondary.name} with pivot attributes")


def reload_relations(session: Session, model: Any, names: list[str]) -> None:
    """쓰기가 끝난 관계 속성을 현재 세션에서 다시 로드합니다.

    AsyncSession.run_sync 밖에서는 lazy load 를 할 수 없으므로 만료 대신 즉시 refresh 합니다.
    """
    if names and model in session:
        session.refresh(model, attribute_names=names)
