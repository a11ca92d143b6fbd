from __future__ import annotations

import logging
import sys

from PySide6.QtGui import QColor, QFont, QPalette
from PySide6.QtWidgets import QApplication, QMessageBox, QStyleFactory

from todolist.dependencies import AppDependencies
from todolist.domain.errors import StoreLoadError
from todolist.infra.logging import setup_logging
from todolist.services.view_model import TodoViewModel
from todolist.ui.main_window import MainWindow

logger = logging.getLogger(__name__)


def _apply_light_palette(app: QApplication) -> None:
    palette = QPalette()
    palette.setColor(QPalette.Window, QColor("#EEF1F6"))
    palette.setColor(QPalette.WindowText, QColor("#1F2937"))
    palette.setColor(QPalette.Base, QColor("#FFFFFF"))
    palette.setColor(QPalette.AlternateBase, QColor("#F3F4F6"))
    palette.setColor(QPalette.Text, QColor("#1F2937"))
    palette.setColor(QPalette.Button, QColor("#E5E7EB"))
    palette.setColor(QPalette.ButtonText, QColor("#1F2937"))
    palette.setColor(QPalette.Highlight, QColor("#2563EB"))
    palette.setColor(QPalette.HighlightedText, QColor("#FFFFFF"))
    app.setPalette(palette)


def main() -> None:
    setup_logging()
    app = QApplication(sys.argv)

    try:
        deps = AppDependencies()
    except StoreLoadError as exc:
        logger.critical("Cannot start without a store: %s", exc)
        QMessageBox.critical(None, "Storage error", str(exc))
        sys.exit(1)

    app.setStyle(QStyleFactory.create("Fusion"))
    _apply_light_palette(app)
    app.setFont(QFont("Helvetica", 11))

    view_model = TodoViewModel(deps.manager)
    window = MainWindow(view_model)
    window.show()

    exit_code = app.exec()
    view_model.close()
    deps.close()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
