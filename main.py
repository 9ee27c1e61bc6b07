"""
main.py — Entry point for PDF Analysis Canvas
"""

import logging
import os
import sys

# High-DPI support
os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")

from PyQt6.QtGui import QFont
from PyQt6.QtWidgets import QApplication

from config import APPLICATION, ORGANIZATION
from main_window import MainWindow
from version import __version__


def setup_logging():
    level = os.environ.get("PDF_CANVAS_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main():
    setup_logging()
    logging.getLogger(__name__).info("PDF Analysis Canvas %s starting", __version__)

    app = QApplication(sys.argv)
    app.setApplicationName(APPLICATION)
    app.setOrganizationName(ORGANIZATION)
    app.setApplicationVersion(__version__)
    app.setStyle("Fusion")

    font = QFont("Segoe UI", 10)
    app.setFont(font)

    app.setStyleSheet("""
        QMainWindow { background: #f0f0f0; }
        QScrollArea#pdfScrollArea { border: none; background: #444; }
        QSplitter::handle { background: #d0d0d0; }
        QPushButton {
            padding: 4px 12px;
            border-radius: 4px;
            border: 1px solid #ccc;
            background: white;
        }
        QPushButton:hover { background: #f0f0f0; }
        QPushButton:pressed { background: #e0e0e0; }
        QStatusBar { background: #fafafa; border-top: 1px solid #e0e0e0; }
    """)

    window = MainWindow()

    # Open a file passed on the command line
    for arg in sys.argv[1:]:
        if os.path.exists(arg):
            window.load_file(arg)
            break

    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
