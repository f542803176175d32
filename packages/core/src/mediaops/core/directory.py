"""用户目录查询 -- 部门归属 / 客户身份

外部身份系统提供的查询能力。默认实现是内存目录，
可从 JSON 文件加载：[{"actor_id": ..., "role": ..., "department_id": ...}, ...]
"""

import json
from pathlib import Path
from typing import Protocol

import structlog

from .models.identity import Actor

log = structlog.get_logger()


class DirectoryLookup(Protocol):
    """用户身份查询接口"""

    async def get_identity(self, user_id: str) -> Actor | None:
        """查询用户身份，不存在返回 None"""
        ...


class InMemoryDirectory:
    """内存用户目录"""

    def __init__(self, identities: list[Actor] | None = None) -> None:
        self._identities: dict[str, Actor] = {}
        for identity in identities or []:
            self.register(identity)

    def register(self, identity: Actor) -> None:
        self._identities[identity.actor_id] = identity

    async def get_identity(self, user_id: str) -> Actor | None:
        return self._identities.get(user_id)

    def __len__(self) -> int:
        return len(self._identities)

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryDirectory":
        """从 JSON 文件加载目录

        Raises:
            FileNotFoundError: 文件不存在
            pydantic.ValidationError: 条目格式不合法
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        directory = cls([Actor.model_validate(item) for item in raw])
        log.info("directory_loaded", path=str(path), count=len(directory))
        return directory
