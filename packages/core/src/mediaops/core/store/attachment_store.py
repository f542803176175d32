"""AttachmentStore 文件系统实现

附件内容写入 <attachments_dir>/<task_id>/<attachment_id>，
任务文档只保存 AttachmentRef（hash、size、storage_ref）。
"""

import hashlib
import shutil
from datetime import datetime
from pathlib import Path

import structlog
from ulid import ULID

from ..models.attachment import AttachmentRef

log = structlog.get_logger()


def compute_hash_and_size(content: bytes) -> tuple[str, int]:
    """计算 SHA-256 hash 和内容大小

    Args:
        content: 原始内容字节

    Returns:
        (sha256_hex, size_bytes) 元组
    """
    return hashlib.sha256(content).hexdigest(), len(content)


class FileAttachmentStore:
    """AttachmentStore 的文件系统实现"""

    def __init__(self, attachments_dir: Path) -> None:
        self._attachments_dir = attachments_dir

    @property
    def attachments_dir(self) -> Path:
        return self._attachments_dir

    async def put_attachment(
        self,
        task_id: str,
        filename: str,
        content: bytes,
        uploaded_by: str,
        uploaded_at: datetime,
        mime: str = "application/octet-stream",
    ) -> AttachmentRef:
        """写入附件内容并返回引用"""
        attachment_id = str(ULID())
        hash_hex, size = compute_hash_and_size(content)

        file_path = self._get_attachment_path(task_id, attachment_id)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(content)

        return AttachmentRef(
            attachment_id=attachment_id,
            filename=filename,
            mime=mime,
            size=size,
            hash=hash_hex,
            storage_ref=str(file_path),
            uploaded_by=uploaded_by,
            uploaded_at=uploaded_at,
        )

    async def get_attachment_content(self, ref: AttachmentRef) -> bytes | None:
        """读取附件内容，文件缺失时返回 None"""
        file_path = Path(ref.storage_ref)
        if not file_path.exists():
            return None
        return file_path.read_bytes()

    async def delete_attachment(self, ref: AttachmentRef) -> None:
        Path(ref.storage_ref).unlink(missing_ok=True)

    async def delete_task_attachments(self, task_id: str) -> None:
        """删除任务的全部附件内容"""
        task_dir = self._attachments_dir / task_id
        if task_dir.exists():
            shutil.rmtree(task_dir)
            log.info("task_attachments_deleted", task_id=task_id)

    def _get_attachment_path(self, task_id: str, attachment_id: str) -> Path:
        """获取附件文件存储路径"""
        return self._attachments_dir / task_id / attachment_id
