from factory_sqlalchemy.relations.request import RelationRequest

__all__ = ["RelationRequest"]
