from sqlalchemy import Column, Integer, String, Date, Text, ForeignKey
from sqlalchemy.orm import relationship
from educafric.db.base import BaseModel
from educafric.models.shared.enums import AttendanceStatus

class StudentAttendance(BaseModel):
    __tablename__ = 'student_attendances'

    school_id = Column(Integer, ForeignKey('schools.id'), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    class_name = Column(String(100))
    attendance_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=AttendanceStatus.PRESENT.value)  # present, absent, late, excused
    notes = Column(Text)
    marked_by = Column(Integer)  # Teacher user ID

    # Relationships
    student = relationship("User", foreign_keys=[student_id])
