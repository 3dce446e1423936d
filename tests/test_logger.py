"""
Logger tests.

Run with: python -m pytest tests/test_logger.py -v
"""

import logging
import unittest

from linsim.logger import LogFormatter, Logger, LogLevel, MemoryLogHandler, get_logger


class TestLogger(unittest.TestCase):
    """Test the logging system."""

    def setUp(self):
        Logger.reset()
        Logger.initialize(level=LogLevel.DEBUG, console_output=False, use_colors=False)

    def tearDown(self):
        Logger.reset()

    def test_logger_creation(self):
        """Same subsystem, same instance."""
        self.assertIs(Logger('test1'), Logger('test1'))
        self.assertIs(get_logger('test1'), Logger('test1'))
        self.assertIsNot(Logger('test1'), Logger('test2'))

    def test_log_levels(self):
        self.assertTrue(LogLevel.ERROR > LogLevel.INFO)
        self.assertTrue(LogLevel.DEBUG < LogLevel.WARNING)
        self.assertEqual(LogLevel.from_name("warn"), LogLevel.WARNING)
        self.assertEqual(LogLevel.from_name(" info "), LogLevel.INFO)
        with self.assertRaises(KeyError):
            LogLevel.from_name("loud")

    def test_recent_logs_carry_context(self):
        log = get_logger('unit')
        log.info("Created node", user_id=4, context={'node_id': 9})
        log.debug("Detail")

        entries = Logger.get_recent_logs(subsystem='unit')
        self.assertEqual([e['message'] for e in entries], ["Created node", "Detail"])
        self.assertEqual(entries[0]['user_id'], 4)
        self.assertEqual(entries[0]['context'], {'node_id': 9})

        self.assertEqual(len(Logger.get_recent_logs(level='INFO', subsystem='unit')), 1)

    def test_initialize_is_once_only(self):
        Logger.initialize(level=LogLevel.CRITICAL, console_output=False)
        get_logger('unit').info("still captured")
        self.assertEqual(len(Logger.get_recent_logs(subsystem='unit')), 1)

    def test_no_buffer_before_initialize(self):
        Logger.reset()
        self.assertEqual(Logger.get_recent_logs(), [])


class TestLogFormatter(unittest.TestCase):
    """Test the one-line record format."""

    def make_record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name='linsim.engine',
            level=logging.WARNING,
            pathname=__file__,
            lineno=1,
            msg="Rejected create",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_format_with_context(self):
        line = LogFormatter(use_colors=False).format(
            self.make_record(subsystem='engine', user_id=2, context={'node_id': 5, 'operation': 'create'})
        )
        self.assertIn("WARNING", line)
        self.assertIn("[engine]", line)
        self.assertIn("(user=2)", line)
        self.assertTrue(line.endswith("Rejected create {node_id=5 operation=create}"))

    def test_format_without_extras(self):
        line = LogFormatter(use_colors=False).format(self.make_record())
        self.assertTrue(line.endswith("Rejected create"))
        self.assertNotIn("(user=", line)


class TestMemoryLogHandler(unittest.TestCase):

    def test_buffer_is_bounded(self):
        handler = MemoryLogHandler(max_entries=3)
        for i in range(5):
            handler.emit(logging.LogRecord('linsim', logging.INFO, __file__, 1, f"m{i}", (), None))

        self.assertEqual([e['message'] for e in handler.get_logs()], ["m2", "m3", "m4"])
        handler.clear()
        self.assertEqual(handler.get_logs(), [])


if __name__ == '__main__':
    unittest.main()
