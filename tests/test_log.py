from datetime import datetime, timedelta

import pytest

from naza import log
from naza.log import AssertBehavior, Level, LogError, LogPanic


@pytest.fixture(autouse=True)
def _restore_clock():
    yield
    log.set_clock(None)


def _capture(**kwargs):
    lines = []
    opts = dict(
        is_to_stdout=False,
        timestamp_flag=False,
        short_file_flag=False,
        hook_backend_out_fn=lambda level, line: lines.append((level, line)),
    )
    opts.update(kwargs)
    return log.new(**opts), lines


def test_level_readable_string():
    assert Level.TRACE.readable_string() == "LevelTrace"
    assert Level.DEBUG.readable_string() == "LevelDebug"
    assert Level.INFO.readable_string() == "LevelInfo"
    assert Level.WARN.readable_string() == "LevelWarn"
    assert Level.ERROR.readable_string() == "LevelError"
    assert Level.FATAL.readable_string() == "LevelFatal"
    assert Level.PANIC.readable_string() == "LevelPanic"
    assert Level.LOG_NOTHING.readable_string() == "LevelLogNothing"


def test_assert_behavior_readable_string():
    assert AssertBehavior.ERROR.readable_string() == "AssertError"
    assert AssertBehavior.FATAL.readable_string() == "AssertFatal"
    assert AssertBehavior.PANIC.readable_string() == "AssertPanic"


def test_new_rejects_invalid_level():
    with pytest.raises(LogError):
        log.new(level=Level.LOG_NOTHING + 1)


def test_new_rejects_invalid_assert_behavior():
    with pytest.raises(LogError):
        log.new(assert_behavior=AssertBehavior.PANIC + 1)


def test_new_rejects_directory_as_filename(tmp_path):
    with pytest.raises(OSError):
        log.new(filename=str(tmp_path))


def test_new_rejects_path_under_file(tmp_path):
    plain = tmp_path / "plain.txt"
    plain.write_text("x")
    with pytest.raises(OSError):
        log.new(filename=str(plain / "111"))


def test_new_rejects_unknown_option():
    with pytest.raises(TypeError):
        log.new(no_such_option=True)


def test_hook_receives_formatted_line():
    logger, lines = _capture()
    logger.info("hello %s %d", "world", 1)
    assert lines == [(Level.INFO, " INFO hello world 1\n")]


def test_all_levels_format():
    logger, lines = _capture(level=Level.TRACE)
    logger.trace("a")
    logger.debug("b")
    logger.warn("c")
    logger.error("d")
    assert [line for _, line in lines] == ["TRACE a\n", "DEBUG b\n", " WARN c\n", "ERROR d\n"]


def test_level_filtering():
    logger, lines = _capture(level=Level.INFO)
    logger.trace("t")
    logger.debug("d")
    logger.info("i")
    assert [level for level, _ in lines] == [Level.INFO]


def test_non_string_message():
    logger, lines = _capture()
    logger.info(42)
    assert lines[0][1] == " INFO 42\n"


def test_trailing_newline_not_doubled():
    logger, lines = _capture()
    logger.info("line\n")
    assert lines[0][1] == " INFO line\n"


def test_level_flag_off():
    logger, lines = _capture(level_flag=False)
    logger.info("3")
    assert lines[0][1] == "3\n"


def test_prefixes_stack():
    logger, lines = _capture()
    child = logger.with_prefix("log_test")
    grandchild = child.with_prefix("sub")
    logger.info("x")
    child.info("y")
    grandchild.info("z")
    assert [line for _, line in lines] == [
        " INFO x\n",
        " INFO [log_test] y\n",
        " INFO [log_test] [sub] z\n",
    ]


def test_timestamp_with_ms():
    log.set_clock(lambda: datetime(2021, 3, 4, 5, 6, 7, 8000))
    logger, lines = _capture(timestamp_flag=True)
    logger.info("t")
    assert lines[0][1] == "2021/03/04 05:06:07.008000  INFO t\n"


def test_timestamp_without_ms():
    log.set_clock(lambda: datetime(2021, 3, 4, 5, 6, 7, 8000))
    logger, lines = _capture(timestamp_flag=True, timestamp_with_ms_flag=False)
    logger.info("t")
    assert lines[0][1] == "2021/03/04 05:06:07  INFO t\n"


def test_short_file_points_at_caller():
    logger, lines = _capture(short_file_flag=True)
    logger.info("where")
    line = lines[0][1]
    assert line.startswith(" INFO where - test_log.py:")
    assert line.rstrip("\n").rsplit(":", 1)[1].isdigit()


def test_output_logs_at_info():
    logger, lines = _capture()
    logger.output(2, "by output")
    logger.out(Level.WARN, 1, "by out")
    assert lines == [(Level.INFO, " INFO by output\n"), (Level.WARN, " WARN by out\n")]


def test_console_output_uses_color(capsys):
    logger = log.new(is_to_stdout=True, timestamp_flag=False, short_file_flag=False)
    logger.info("hi")
    out = capsys.readouterr().out
    assert out in ("\033[22;36m INFO \033[0mhi\n", " INFO hi\n")


def test_console_disabled(capsys):
    logger = log.new(is_to_stdout=False, timestamp_flag=False, short_file_flag=False)
    logger.info("not seen")
    assert capsys.readouterr().out == ""


def test_file_output_creates_directory(tmp_path):
    filename = tmp_path / "nested" / "aaa.log"
    logger = log.new(
        filename=str(filename), is_to_stdout=False, timestamp_flag=False, short_file_flag=False
    )
    logger.info("one")
    logger.error("two")
    logger.sync()
    assert filename.read_text() == " INFO one\nERROR two\n"


def test_rotate_daily(tmp_path):
    t0 = datetime(2022, 5, 1, 10, 0, 0)
    now = [t0]
    log.set_clock(lambda: now[0])
    filename = tmp_path / "daily.log"
    logger = log.new(
        filename=str(filename),
        is_to_stdout=False,
        is_rotate_daily=True,
        timestamp_flag=False,
        short_file_flag=False,
    )
    logger.info("IsRotateDaily 1")
    logger.info("IsRotateDaily 2")
    now[0] = t0 + timedelta(hours=25)
    logger.info("IsRotateDaily 3")
    logger.sync()
    backup = tmp_path / "daily.log.20220501"
    assert backup.read_text() == " INFO IsRotateDaily 1\n INFO IsRotateDaily 2\n"
    assert filename.read_text() == " INFO IsRotateDaily 3\n"


def test_rotate_hourly(tmp_path):
    t0 = datetime(2022, 5, 1, 10, 30, 0)
    now = [t0]
    log.set_clock(lambda: now[0])
    filename = tmp_path / "hourly.log"
    logger = log.new(
        filename=str(filename),
        is_to_stdout=False,
        is_rotate_hourly=True,
        timestamp_flag=False,
        short_file_flag=False,
    )
    logger.info("1")
    now[0] = t0 + timedelta(hours=1)
    logger.info("2")
    now[0] = t0 + timedelta(hours=2)
    logger.info("3")
    logger.sync()
    assert (tmp_path / "hourly.log.2022050110").read_text() == " INFO 1\n"
    assert (tmp_path / "hourly.log.2022050111").read_text() == " INFO 2\n"
    assert filename.read_text() == " INFO 3\n"


def test_fatal_exits_with_status_one():
    logger, lines = _capture(level=Level.INFO)
    with pytest.raises(SystemExit) as exc_info:
        logger.fatal("Fatal%s", ".")
    assert exc_info.value.code == 1
    assert lines == [(Level.FATAL, "FATAL Fatal.\n")]


def test_panic_raises():
    logger, lines = _capture()
    with pytest.raises(LogPanic, match="bbb"):
        logger.panic("%s", "bbb")
    assert lines == [(Level.PANIC, "PANIC bbb\n")]


@pytest.mark.parametrize(
    "expected, actual",
    [(None, None), (1, 1), ("aaa", "aaa"), (b"", b""), (b"\x00\x01\x02", b"\x00\x01\x02")],
)
def test_assert_success_logs_nothing(expected, actual):
    logger, lines = _capture()
    logger.assert_equal(expected, actual)
    assert lines == []


def test_assert_error_behavior():
    logger, lines = _capture()
    logger.assert_equal(None, 1, "I guess this could be failed.", "I guess so")
    assert len(lines) == 1
    level, line = lines[0]
    assert level == Level.ERROR
    assert "assert failed." in line
    assert "I guess so" in line


def test_assert_fatal_behavior():
    logger, lines = _capture(assert_behavior=AssertBehavior.FATAL)
    with pytest.raises(SystemExit) as exc_info:
        logger.assert_equal(None, 1)
    assert exc_info.value.code == 1
    assert lines[0][0] == Level.FATAL


def test_assert_panic_behavior():
    logger, lines = _capture(assert_behavior=AssertBehavior.PANIC)
    with pytest.raises(LogPanic, match="assert failed"):
        logger.assert_equal(b"", "aaa")
    assert lines[0][0] == Level.PANIC


def test_get_option_returns_copy():
    logger = log.new(level=Level.DEBUG, is_to_stdout=False)
    option = logger.get_option()
    assert option.level == Level.DEBUG
    option.level = Level.ERROR
    assert logger.get_option().level == Level.DEBUG


def test_init_resets_to_defaults():
    logger = log.new(level=Level.ERROR, is_to_stdout=False)
    lines = []
    logger.init(
        is_to_stdout=False,
        timestamp_flag=False,
        short_file_flag=False,
        hook_backend_out_fn=lambda level, line: lines.append((level, line)),
    )
    assert logger.get_option().level == Level.DEBUG
    logger.info("hookme %d", 2)
    assert lines == [(Level.INFO, " INFO hookme 2\n")]


def test_prefixed_logger_shares_configuration():
    logger, lines = _capture(level=Level.ERROR)
    child = logger.with_prefix("p")
    child.info("dropped")
    child.error("kept")
    assert lines == [(Level.ERROR, "ERROR [p] kept\n")]


def test_log_nothing_level_suppresses_everything():
    logger, lines = _capture(level=Level.LOG_NOTHING)
    logger.error("x")
    with pytest.raises(LogPanic):
        logger.panic("y")
    assert lines == []