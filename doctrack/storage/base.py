"""Declarative base shared by every model in the storage package."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
