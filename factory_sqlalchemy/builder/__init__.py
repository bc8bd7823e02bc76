from factory_sqlalchemy.builder.base import FactoryBuilder

__all__ = ["FactoryBuilder"]
