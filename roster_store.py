"""
Roster persistence.

The roster is the full list of students with their marks and (optionally)
their latest prediction. Writes are last-write-wins: an incoming student
replaces the stored one with the same ``pin``, otherwise it is appended.
"""

import logging
import os
import threading
from typing import Callable, List, Optional, Sequence

import joblib

from schemas import Student

logger = logging.getLogger(__name__)


def merge_by_pin(existing: Sequence[Student], incoming: Sequence[Student]) -> List[Student]:
    """Replace students with a matching pin in place, append the rest in order"""
    merged = list(existing)
    positions = {student.pin: i for i, student in enumerate(merged)}

    for student in incoming:
        if student.pin in positions:
            merged[positions[student.pin]] = student
        else:
            positions[student.pin] = len(merged)
            merged.append(student)

    return merged


class BaseRosterStore:
    """get_roster / save_roster / upsert over a backend supplied by subclasses"""

    def __init__(self, seed_roster: Optional[Sequence[Student]] = None):
        self._seed = list(seed_roster or [])
        self._lock = threading.RLock()

    def _load(self) -> Optional[List[Student]]:
        raise NotImplementedError

    def _dump(self, students: List[Student]):
        raise NotImplementedError

    def get_roster(self) -> List[Student]:
        with self._lock:
            stored = self._load()
        if stored is None:
            return [student.model_copy(deep=True) for student in self._seed]
        return stored

    def save_roster(self, students: Sequence[Student]):
        with self._lock:
            self._dump(list(students))
        logger.info("Saved roster of %d students", len(students))

    def upsert(self, students: Sequence[Student]) -> List[Student]:
        with self._lock:
            merged = merge_by_pin(self.get_roster(), students)
            self.save_roster(merged)
        return merged

    def modify(self, update: Callable[[List[Student]], List[Student]]) -> List[Student]:
        """Read, transform and save the roster as one step under the store lock"""
        with self._lock:
            students = update(self.get_roster())
            self.save_roster(students)
        return students

    def get_student(self, pin: str) -> Optional[Student]:
        for student in self.get_roster():
            if student.pin == pin:
                return student
        return None

    def get_student_by_email(self, email: str) -> Optional[Student]:
        for student in self.get_roster():
            if student.email == email:
                return student
        return None


class RosterStore(BaseRosterStore):
    """Roster kept in a joblib file; falls back to the seed roster until first save"""

    def __init__(self, path: str, seed_roster: Optional[Sequence[Student]] = None):
        super().__init__(seed_roster)
        self.path = path

    def _load(self) -> Optional[List[Student]]:
        if not os.path.exists(self.path):
            return None
        records = joblib.load(self.path)
        return [Student.model_validate(record) for record in records]

    def _dump(self, students: List[Student]):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        joblib.dump([student.model_dump(by_alias=True) for student in students], self.path)


class InMemoryRosterStore(BaseRosterStore):

    def __init__(self, seed_roster: Optional[Sequence[Student]] = None):
        super().__init__(seed_roster)
        self._students: Optional[List[Student]] = None

    def _load(self) -> Optional[List[Student]]:
        if self._students is None:
            return None
        return [student.model_copy(deep=True) for student in self._students]

    def _dump(self, students: List[Student]):
        self._students = [student.model_copy(deep=True) for student in students]
