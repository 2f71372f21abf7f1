"""领域层模型与协议。

包含：
- models: ChatMessage / RequestContext / OperationResult / HealthState 模型。
- conversation: 聊天记录存储协议 ChatMessageStore。
- exceptions: 业务异常类型定义。
"""
