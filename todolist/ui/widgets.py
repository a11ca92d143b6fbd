from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QCheckBox,
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QProgressBar,
    QPushButton,
    QSizePolicy,
    QVBoxLayout,
    QWidget,
)

from todolist.domain.entities import TaskEntity
from todolist.domain.enums import PriorityLevel, priority_bucket

PRIORITY_OPTIONS = [
    ("Low", PriorityLevel.LOW),
    ("Medium", PriorityLevel.MEDIUM),
    ("High", PriorityLevel.HIGH),
]

PRIORITY_TITLES = {
    PriorityLevel.HIGH: "High Priority",
    PriorityLevel.MEDIUM: "Medium Priority",
    PriorityLevel.LOW: "Low Priority",
}

PRIORITY_COLORS = {
    PriorityLevel.HIGH: "#E24A4A",
    PriorityLevel.MEDIUM: "#E0933B",
    PriorityLevel.LOW: "#3B82F6",
}


def priority_title(priority: int) -> str:
    if priority < 0:
        return "No Priority"
    return PRIORITY_TITLES[priority_bucket(priority)]


def priority_color(priority: int) -> str:
    if priority < 0:
        return "#9CA3AF"
    return PRIORITY_COLORS[priority_bucket(priority)]


class TaskRowWidget(QFrame):
    def __init__(self, task: TaskEntity, on_toggle, on_rename, on_delete, parent=None):
        super().__init__(parent)
        self.task = task
        self._on_toggle = on_toggle
        self._on_rename = on_rename
        self._on_delete = on_delete

        self.setObjectName("TaskRow")
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)
        layout.setSpacing(8)

        self.done_check = QCheckBox()
        self.done_check.setChecked(task.is_completed)
        self.done_check.toggled.connect(self._handle_toggle)

        self.title_input = QLineEdit(task.title)
        self.title_input.setPlaceholderText("Task title")
        self.title_input.setFrame(False)
        font = self.title_input.font()
        font.setStrikeOut(task.is_completed)
        self.title_input.setFont(font)
        self.title_input.setEnabled(not task.is_completed)
        self.title_input.editingFinished.connect(self._handle_title_commit)

        due_text = task.due_date.strftime("%d.%m.%Y") if task.due_date else "No due date"
        due_label = QLabel(due_text)
        due_label.setProperty("class", "task-meta")

        self.delete_button = QPushButton("Delete")
        self.delete_button.setProperty("variant", "ghost")
        self.delete_button.clicked.connect(self._handle_delete)

        layout.addWidget(self.done_check)
        layout.addWidget(self.title_input, 1)
        layout.addWidget(due_label)
        layout.addWidget(self.delete_button)

    def _handle_toggle(self, checked: bool) -> None:
        if checked != self.task.is_completed:
            self._on_toggle(self.task)

    def _handle_title_commit(self) -> None:
        title = self.title_input.text().strip()
        if not title:
            self.title_input.setText(self.task.title)
            return
        if title != self.task.title:
            self._on_rename(self.task, title)

    def _handle_delete(self) -> None:
        self._on_delete(self.task)


class PrioritySectionWidget(QFrame):
    def __init__(self, priority: int, tasks: list[TaskEntity], progress: float, parent=None):
        super().__init__(parent)
        self.priority = priority
        self.setObjectName("PrioritySection")

        badge = QLabel("!" * max(min(priority, 3), 0) or "-")
        badge.setFixedSize(40, 40)
        badge.setAlignment(Qt.AlignCenter)
        badge.setStyleSheet(
            f"background-color: {priority_color(priority)}; color: white; border-radius: 10px;"
        )

        title = QLabel(priority_title(priority))
        title.setProperty("class", "section-title")
        count = QLabel(f"{len(tasks)} task{'' if len(tasks) == 1 else 's'}")
        count.setProperty("class", "task-meta")

        labels = QVBoxLayout()
        labels.setSpacing(2)
        labels.addWidget(title)
        labels.addWidget(count)

        self.progress = QProgressBar()
        self.progress.setRange(0, 100)
        self.progress.setValue(int(round(progress * 100)))
        self.progress.setFormat("%p%")
        self.progress.setFixedWidth(90)

        header = QHBoxLayout()
        header.setSpacing(10)
        header.addWidget(badge)
        header.addLayout(labels, 1)
        header.addWidget(self.progress)

        self.rows_layout = QVBoxLayout()
        self.rows_layout.setSpacing(6)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(10)
        layout.addLayout(header)
        layout.addLayout(self.rows_layout)

    def add_row(self, row: QWidget) -> None:
        self.rows_layout.addWidget(row)
