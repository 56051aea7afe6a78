from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from educafric.db.base import BaseModel

class ParentStudentRelation(BaseModel):
    __tablename__ = 'parent_student_relations'
    __table_args__ = (UniqueConstraint('parent_id', 'student_id', name='uq_parent_student'),)

    parent_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    relationship_type = Column(String(30), default="parent")  # father, mother, guardian
    is_primary = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)

    # Relationships
    parent = relationship("User", foreign_keys=[parent_id])
    student = relationship("User", foreign_keys=[student_id])
