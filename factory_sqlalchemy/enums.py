from enum import Enum


class RelationType(Enum):
    BELONGS_TO = "BELONGS_TO"
    HAS_ONE_OR_MANY = "HAS_ONE_OR_MANY"
    BELONGS_TO_MANY = "BELONGS_TO_MANY"
