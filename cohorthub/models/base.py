#cohorthub/models/base.py
"""
Базовый класс для всех ORM-моделей движка.

Использовать как Base при описании моделей:
    from cohorthub.models.base import Base
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
