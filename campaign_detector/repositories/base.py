"""
基础仓库模式 - 定义通用的数据访问接口
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar('T')
K = TypeVar('K')  # Key type


class BaseRepository(ABC, Generic[T, K]):
    """基础仓库抽象类 - 定义通用CRUD操作接口"""

    @abstractmethod
    async def create(self, entity: T) -> T:
        """创建实体"""

    @abstractmethod
    async def get_by_id(self, entity_id: K) -> Optional[T]:
        """根据ID获取实体"""

    @abstractmethod
    async def update(self, entity_id: K, updates: Dict[str, Any]) -> Optional[T]:
        """更新实体"""

    @abstractmethod
    async def list_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        """列出所有实体"""

    @abstractmethod
    async def count(self) -> int:
        """统计实体数量"""
