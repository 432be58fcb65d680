# /app/db/base.py

# This file acts as a central registry for all our SQLAlchemy models.
# By importing them all here, we ensure that the Base class knows about them
# before `create_tables` runs.

from .base_class import Base

from .models.user_models import User, AuthSession
from .models.student_models import Student
