# storefront/services/notices.py
from dataclasses import dataclass, asdict
from typing import List


@dataclass
class Notice:
    level: str  # success, info, error
    message: str


class NoticeBoard:
    """Messages for the user collected while a request runs."""

    def __init__(self):
        self.items: List[Notice] = []

    def success(self, message: str):
        self.items.append(Notice("success", message))

    def info(self, message: str):
        self.items.append(Notice("info", message))

    def error(self, message: str):
        self.items.append(Notice("error", message))

    def as_list(self) -> List[dict]:
        return [asdict(n) for n in self.items]
