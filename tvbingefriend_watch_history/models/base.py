"""Declarative base for SQLAlchemy models"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
