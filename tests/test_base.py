import sys
import unittest

from PySide6.QtCore import QCoreApplication


def qt_app() -> QCoreApplication:
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv[:1])
    return app


class CleanTestCase(unittest.TestCase):
    """Base class that keeps a Qt application alive and shuts down tracked objects in tearDown.

    Tests that create coordinators owning timers or executors should pass them
    through `self.track(...)`.
    """

    @classmethod
    def setUpClass(cls):
        cls.app = qt_app()

    def setUp(self):
        self._tracked = []

    def track(self, obj):
        self._tracked.append(obj)
        return obj

    def tearDown(self):
        for obj in reversed(self._tracked):
            shutdown = getattr(obj, "shutdown", None) or getattr(obj, "stop", None)
            if callable(shutdown):
                shutdown()
        self._tracked.clear()

        # Flush stdio to avoid buffered writes during finalization
        try:
            sys.stdout.flush()
        except Exception:
            pass
        try:
            sys.stderr.flush()
        except Exception:
            pass
