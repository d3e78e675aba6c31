from models.workflow import Conditions
from typing import Optional


class ConditionEvaluator:
    """Evaluates a workflow's flat trigger predicate against a classification event.

    Recognized fields (all optional, ANDed):
    - contains_keyword: case-insensitive substring of the captured content
    - type_is: exact match on the classified entity type
    """

    @staticmethod
    def matches(conditions: Optional[Conditions], entity_type: str, content: str) -> bool:
        if conditions is None:
            return True

        if conditions.contains_keyword:
            if conditions.contains_keyword.lower() not in (content or "").lower():
                return False

        if conditions.type_is and conditions.type_is != entity_type:
            return False

        return True
