"""
操作注册表 - 操作 ID 到操作定义的静态目录
"""
from typing import Iterable, Iterator, List, Optional, Tuple

from .models import OperationDefinition


class OperationRegistry:
    """
    操作注册表

    构造后不可变。lookup 找不到时返回 None 而不抛出异常，
    选择是否合法由编排器负责校验。
    """

    def __init__(self, operations: Iterable[OperationDefinition] = ()):
        """
        初始化注册表

        Args:
            operations: 操作定义，按注册顺序保存

        Raises:
            ValueError: 如果操作 ID 重复
        """
        self._operations = {}
        for operation in operations:
            if operation.operation_id in self._operations:
                raise ValueError(f"操作 ID 重复: {operation.operation_id}")
            self._operations[operation.operation_id] = operation

    def lookup(self, operation_id: str) -> Optional[OperationDefinition]:
        """查找操作定义，不存在时返回 None"""
        return self._operations.get(operation_id)

    def ids(self) -> Tuple[str, ...]:
        """按注册顺序返回所有操作 ID"""
        return tuple(self._operations)

    def missing(self, operation_ids: Iterable[str]) -> List[str]:
        """返回未注册的操作 ID"""
        return [op_id for op_id in operation_ids if op_id not in self._operations]

    def __contains__(self, operation_id: object) -> bool:
        return operation_id in self._operations

    def __iter__(self) -> Iterator[OperationDefinition]:
        return iter(list(self._operations.values()))

    def __len__(self) -> int:
        return len(self._operations)
