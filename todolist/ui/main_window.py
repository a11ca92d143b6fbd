from __future__ import annotations

import logging

from PySide6.QtCore import Qt, QThreadPool
from PySide6.QtGui import QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QProgressBar,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from todolist.domain.entities import TaskEntity
from todolist.domain.errors import TaskStoreError
from todolist.services.view_model import TodoViewModel

from .dialogs import AddTaskDialog
from .widgets import PrioritySectionWidget, TaskRowWidget

logger = logging.getLogger(__name__)


class MainWindow(QWidget):
    def __init__(self, view_model: TodoViewModel):
        super().__init__()
        self.setWindowTitle("Actionable Items")
        self.resize(520, 760)

        self.view_model = view_model
        self.view_model.tasks_changed.connect(self.render)
        self.view_model.error_occurred.connect(self.show_error)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(12)

        layout.addWidget(self._build_header())

        self.scroll = QScrollArea()
        self.scroll.setWidgetResizable(True)
        self.scroll.setFrameShape(QFrame.NoFrame)
        self.scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        layout.addWidget(self.scroll, 1)

        add_button = QPushButton("Add New Task")
        add_button.clicked.connect(self.new_task)
        layout.addWidget(add_button)

        QShortcut(QKeySequence("Ctrl+N"), self, self.new_task)

        self.render()

    def _build_header(self) -> QWidget:
        frame = QFrame()
        frame.setObjectName("NavBar")
        header = QHBoxLayout(frame)
        header.setContentsMargins(12, 10, 12, 10)

        title = QLabel("Actionable Items")
        title.setProperty("class", "panel-title")

        self.stats_label = QLabel("")
        self.stats_label.setProperty("class", "stats-badge")

        self.overall_progress = QProgressBar()
        self.overall_progress.setRange(0, 100)
        self.overall_progress.setFixedWidth(120)

        complete_all_button = QPushButton("Complete all")
        complete_all_button.setProperty("variant", "secondary")
        complete_all_button.clicked.connect(self.complete_all)

        header.addWidget(title)
        header.addStretch()
        header.addWidget(self.stats_label)
        header.addWidget(self.overall_progress)
        header.addWidget(complete_all_button)
        return frame

    def render(self) -> None:
        tasks = self.view_model.tasks
        self.stats_label.setText(f"{self.view_model.completed_count}/{len(tasks)} done")
        self.overall_progress.setValue(
            int(round(TodoViewModel.completion_progress(tasks) * 100))
        )

        content = QWidget()
        content_layout = QVBoxLayout(content)
        content_layout.setContentsMargins(0, 0, 0, 0)
        content_layout.setSpacing(15)

        if not tasks:
            empty = QLabel("Nothing to do yet.")
            empty.setAlignment(Qt.AlignCenter)
            content_layout.addWidget(empty)

        for priority, group in self.view_model.grouped_by_priority():
            section = PrioritySectionWidget(
                priority, group, TodoViewModel.completion_progress(group)
            )
            for task in group:
                section.add_row(
                    TaskRowWidget(task, self.toggle_task, self.rename_task, self.delete_task)
                )
            content_layout.addWidget(section)

        content_layout.addStretch()
        # Rows may be mid-signal when a change lands; defer their deletion.
        previous = self.scroll.takeWidget()
        if previous is not None:
            previous.deleteLater()
        self.scroll.setWidget(content)

    def new_task(self) -> None:
        dialog = AddTaskDialog(self)
        if dialog.exec() != QDialog.Accepted:
            return
        self._run(self.view_model.add_task, dialog.title, dialog.priority, dialog.due_date)

    def toggle_task(self, task: TaskEntity) -> None:
        self._run(self.view_model.toggle_completion, task)

    def rename_task(self, task: TaskEntity, title: str) -> None:
        self._run(self.view_model.update_task_title, task, title)

    def delete_task(self, task: TaskEntity) -> None:
        confirm = QMessageBox.question(self, "Delete task", f"Delete \"{task.title}\"?")
        if confirm != QMessageBox.Yes:
            return
        self._run(self.view_model.delete_task, task)

    def complete_all(self) -> None:
        QThreadPool.globalInstance().start(self._complete_all_in_background)

    def _complete_all_in_background(self) -> None:
        # Runs on a pool thread; error_occurred is queued back to the window.
        try:
            self.view_model.complete_all()
        except TaskStoreError as exc:
            logger.debug("Complete all failed: %s", exc)

    def _run(self, intent, *args) -> None:
        try:
            intent(*args)
        except ValueError as exc:
            self.show_error(str(exc))
        except TaskStoreError:
            # The view-model already reported it through error_occurred.
            self.render()

    def show_error(self, message: str) -> None:
        QMessageBox.warning(self, "Something went wrong", message)
