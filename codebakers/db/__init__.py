"""
Database Package
================

Exports key database components.
"""

from codebakers.db.models import Base, EngineeringProjectModel
from codebakers.db.connection import Database, init_db
