#cohorthub/schemas/response.py
from pydantic import BaseModel, Field
from typing import Any, Optional

class ErrorDetail(BaseModel):
    """
    ErrorDetail — детальное описание ошибки (код, сообщение, детали).
    """
    code: str = Field(..., examples=["at_capacity"], description="Код ошибки (machine-readable)")
    message: str = Field(..., examples=["Problem statement has reached its selection limit"], description="Сообщение об ошибке")
    details: Optional[Any] = Field(None, examples=[{"problem_statement_id": 3}], description="Дополнительные детали")

class ErrorResponse(BaseModel):
    """
    ErrorResponse — стандартная структура для ошибки.
    """
    error: ErrorDetail

class SuccessResponse(BaseModel):
    """
    SuccessResponse — универсальный ответ с результатом выполнения операции.
    """
    result: Any = Field(..., description="Результат запроса (может быть любым объектом)")
    detail: Optional[str] = Field(None, examples=["Operation successful"], description="Дополнительная информация")

class ListResponse(BaseModel):
    """
    ListResponse — универсальный ответ для списков (пагинация).
    """
    results: Any = Field(..., description="Список результатов (обычно List[SomeSchema])")
    total_count: Optional[int] = Field(None, description="Общее количество результатов (для пагинации)")
    detail: Optional[str] = Field(None, description="Дополнительная информация")
