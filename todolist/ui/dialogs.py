from __future__ import annotations

from datetime import datetime

from PySide6.QtCore import QDate
from PySide6.QtWidgets import (
    QComboBox,
    QDateEdit,
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
)

from todolist.config import SETTINGS

from .widgets import PRIORITY_OPTIONS


class AddTaskDialog(QDialog):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Add New Task")
        self.setObjectName("AddTaskDialog")
        self.resize(360, 200)

        self.title_input = QLineEdit()
        self.title_input.setPlaceholderText("Task Title")
        self.title_input.textChanged.connect(self._sync_add_button)

        self.priority_combo = QComboBox()
        for label, value in PRIORITY_OPTIONS:
            self.priority_combo.addItem(label, int(value))
        default_index = self.priority_combo.findData(SETTINGS.default_priority)
        self.priority_combo.setCurrentIndex(max(default_index, 0))

        self.due_input = QDateEdit(QDate.currentDate())
        self.due_input.setCalendarPopup(True)
        self.due_input.setDisplayFormat("dd.MM.yyyy")

        form = QFormLayout()
        form.addRow("Title", self.title_input)
        form.addRow("Priority", self.priority_combo)
        form.addRow("Due Date", self.due_input)

        self.add_button = QPushButton("Add Task")
        self.add_button.setEnabled(False)
        self.add_button.clicked.connect(self.accept)

        cancel_button = QPushButton("Cancel")
        cancel_button.setProperty("variant", "ghost")
        cancel_button.clicked.connect(self.reject)

        buttons = QHBoxLayout()
        buttons.addStretch()
        buttons.addWidget(cancel_button)
        buttons.addWidget(self.add_button)

        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addLayout(buttons)

    def _sync_add_button(self, text: str) -> None:
        self.add_button.setEnabled(bool(text.strip()))

    @property
    def title(self) -> str:
        return self.title_input.text().strip()

    @property
    def priority(self) -> int:
        return int(self.priority_combo.currentData())

    @property
    def due_date(self) -> datetime:
        return datetime.combine(self.due_input.date().toPython(), datetime.min.time())
