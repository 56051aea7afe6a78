# educafric/models/auth/__init__.py

# Import models in dependency order
from .user import User
from .parent_student_relation import ParentStudentRelation

# Make sure all models are available
__all__ = [
    "User",
    "ParentStudentRelation",
]
