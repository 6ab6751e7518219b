"""
This file contains custom, application-specific exceptions.
"""

class StudentNotFoundError(Exception):
    """Raised when a student ID is not found in the workspace store."""
    pass

class RecordNotFoundError(Exception):
    """Raised when a subject, lesson or prepayment ID is not found for a student."""
    pass

class TimeSlotConflictError(Exception):
    """Raised when a new lesson's time slot overlaps a busy slot on the same day."""
    def __init__(self, start_time: str, end_time: str, busy: list[str]):
        self.start_time = start_time
        self.end_time = end_time
        self.busy = busy
        super().__init__(f"Time slot {start_time}-{end_time} overlaps busy slots: {', '.join(busy)}")
