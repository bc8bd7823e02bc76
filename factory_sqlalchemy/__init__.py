from factory_sqlalchemy.builder import FactoryBuilder
from factory_sqlalchemy.config import SessionHandler, init_manager, scoped_session_context, session_context
from factory_sqlalchemy.enums import RelationType
from factory_sqlalchemy.exceptions import (
    FactoryError,
    FactoryNotDefinedError,
    RelationNotFoundError,
    SessionNotConfiguredError,
    UndefinedStateError,
)
from factory_sqlalchemy.factory import Factory, factory, get_factory, set_factory
from factory_sqlalchemy.relations import RelationRequest

__all__ = [
    "Factory",
    "FactoryBuilder",
    "RelationRequest",
    "RelationType",
    "factory",
    "get_factory",
    "set_factory",
    "init_manager",
    "SessionHandler",
    "session_context",
    "scoped_session_context",
    "FactoryError",
    "FactoryNotDefinedError",
    "UndefinedStateError",
    "RelationNotFoundError",
    "SessionNotConfiguredError",
]
