"""
Declarative base shared by all Registrations Service models.
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
