"""数据模型 -- DeliveryReceipt

所有投递端（webhook、log、Mock）统一返回此类型。
"""

from pydantic import BaseModel, Field


class DeliveryReceipt(BaseModel):
    """单个事件的投递回执"""

    event_id: str = Field(description="投递的事件 ID")
    event_type: str = Field(description="事件类型")
    sink: str = Field(description="实际完成投递的投递端（webhook/log）")
    status_code: int | None = Field(default=None, description="HTTP 状态码（非 HTTP 投递端为空）")
    duration_ms: int = Field(default=0, ge=0, description="投递耗时（毫秒）")

    # 降级信息
    is_fallback: bool = Field(default=False, description="是否为降级投递")
    fallback_reason: str = Field(default="", description="降级原因说明")
