"""Attachment 引用模型

附件内容存放在外部 blob 存储中，任务文档只保存不透明引用。
hash 和 size 用于完整性校验。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class AttachmentRef(BaseModel):
    """附件引用"""

    attachment_id: str = Field(description="唯一标识，ULID 格式")
    filename: str = Field(description="原始文件名")
    mime: str = Field(default="application/octet-stream", description="MIME 类型")
    size: int = Field(default=0, ge=0, description="内容大小（字节）")
    hash: str = Field(default="", description="SHA-256 哈希")
    storage_ref: str = Field(description="blob 存储引用")
    uploaded_by: str = Field(description="上传人 ID")
    uploaded_at: datetime = Field(description="上传时间")
