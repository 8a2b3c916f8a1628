"""
写回结果模型
"""

from dataclasses import dataclass, asdict, field
from typing import Dict, List


@dataclass
class StorageResult:
    """单个计划写回结果

    errors 累积所有子操作的失败信息，success 仅在 errors 为空时为 True
    """
    plan_id: str
    success: bool = True
    tickets_updated: int = 0
    comments_added: int = 0
    custom_fields_updated: int = 0
    errors: List[str] = field(default_factory=list)

    @classmethod
    def failed(cls, plan_id: str, error: str) -> "StorageResult":
        return cls(plan_id=plan_id, success=False, errors=[error])

    def to_dict(self) -> Dict:
        """转换为字典"""
        return asdict(self)
