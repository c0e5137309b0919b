from datetime import datetime
from typing import List

import structlog

logger = structlog.get_logger()


def format_return_record(return_id, action, qty) -> str:
    return f"returnId={return_id} action={action} qty={qty}"


def format_box_record(box_id, action, qty) -> str:
    return f"boxId={box_id} action={action} qty={qty}"


class AuditLog:
    def append(self, line: str) -> None:
        raise NotImplementedError


class MemoryAuditLog(AuditLog):
    def __init__(self):
        self.lines: List[str] = []

    def append(self, line):
        self.lines.append(line)


class FileAuditLog(AuditLog):
    """Append-only text file, one timestamped line per event."""

    def __init__(self, path, clock=datetime.now):
        self.path = path
        self.clock = clock

    def append(self, line):
        stamp = self.clock().strftime("%Y-%m-%d %H:%M")
        with open(self.path, "a", encoding="utf-8") as fh:
            fh.write(f"{stamp} | {line}\n")
        logger.debug("audit.appended", path=str(self.path), line=line)
