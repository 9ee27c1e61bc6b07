"""
store.py — TextBoxStore: the text-box persistence collaborator
In-memory list per sheet with an optional JSON snapshot on disk.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QObject, pyqtSignal

from models import CreateTextBoxRequest, TextBox

logger = logging.getLogger(__name__)

# id and sheet_id are fixed at creation
EDITABLE_FIELDS = ("content", "x", "y", "width", "height", "color", "zone")


class TextBoxStore(QObject):
    textboxes_changed = pyqtSignal(int)  # sheet_id

    def __init__(self, snapshot_path: Optional[str] = None, parent=None):
        super().__init__(parent)
        self.boxes: list[TextBox] = []
        self._next_id = 1
        self._path: Optional[Path] = Path(snapshot_path) if snapshot_path else None
        self._load()

    @property
    def snapshot_path(self) -> Optional[Path]:
        return self._path

    def _load(self):
        if self._path is None or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            self.boxes = [TextBox.from_dict(d) for d in data]
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Could not read text box snapshot %s: %s", self._path, e)
            self.boxes = []
        self._next_id = max((b.id for b in self.boxes), default=0) + 1

    def _save(self):
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps([b.to_dict() for b in self.boxes], ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.warning("Could not write text box snapshot %s: %s", self._path, e)

    def create_text_box(self, request: CreateTextBoxRequest) -> TextBox:
        box = TextBox.from_request(self._next_id, request)
        self._next_id += 1
        self.boxes.append(box)
        self._save()
        logger.info("Text box %d created on sheet %d (zone=%s)", box.id, box.sheet_id, box.zone)
        self.textboxes_changed.emit(box.sheet_id)
        return box

    def list_text_boxes_for_sheet(self, sheet_id: int) -> list[TextBox]:
        """Creation order."""
        return [b for b in self.boxes if b.sheet_id == sheet_id]

    def get(self, box_id: int) -> Optional[TextBox]:
        for b in self.boxes:
            if b.id == box_id:
                return b
        return None

    def update_text_box(self, box_id: int, **fields) -> Optional[TextBox]:
        """Change editable fields of a box in place. None if the id is unknown."""
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"not editable: {', '.join(sorted(unknown))}")
        box = self.get(box_id)
        if box is None:
            return None
        for name, value in fields.items():
            setattr(box, name, value)
        self._save()
        logger.debug("Text box %d updated: %s", box_id, ", ".join(sorted(fields)))
        self.textboxes_changed.emit(box.sheet_id)
        return box

    def delete_text_box(self, box_id: int) -> bool:
        box = self.get(box_id)
        if box is None:
            return False
        self.boxes.remove(box)
        self._save()
        self.textboxes_changed.emit(box.sheet_id)
        return True

    def clear_sheet(self, sheet_id: int):
        before = len(self.boxes)
        self.boxes = [b for b in self.boxes if b.sheet_id != sheet_id]
        if len(self.boxes) != before:
            self._save()
            self.textboxes_changed.emit(sheet_id)
