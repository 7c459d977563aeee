import io
import os
import signal
import unittest
from unittest import mock

from boxy.main import DragTracker, _setup_runtime, parse_arguments, run
from boxy.renderer.engine import DEFAULT_LIGHT, Vec3
from boxy.renderer.terminal import LEFT_DRAG_EVENT, RIGHT_DRAG_EVENT, MouseEvent, TerminalController


def drag(col: int, row: int) -> MouseEvent:
    return MouseEvent(LEFT_DRAG_EVENT, col, row, False)


class DragTrackerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tracker = DragTracker()

    def test_first_drag_only_sets_anchor(self) -> None:
        frame = self.tracker.update([drag(10, 5)], 24, 80)
        self.assertEqual((frame.dx, frame.dy), (0, 0))
        self.assertEqual((self.tracker.last_row, self.tracker.last_col), (5, 10))

    def test_delta_uses_last_event_of_frame(self) -> None:
        self.tracker.update([drag(10, 5)], 24, 80)
        frame = self.tracker.update([drag(11, 5), drag(13, 7)], 24, 80)
        self.assertEqual((frame.dx, frame.dy), (2, 3))

    def test_no_events_keeps_anchor(self) -> None:
        self.tracker.update([drag(10, 5)], 24, 80)
        frame = self.tracker.update([], 24, 80)
        self.assertEqual((frame.dx, frame.dy), (0, 0))
        frame = self.tracker.update([drag(12, 5)], 24, 80)
        self.assertEqual((frame.dx, frame.dy), (0, 2))

    def test_release_drops_anchor(self) -> None:
        self.tracker.update([drag(10, 5)], 24, 80)
        self.tracker.update([MouseEvent(0, 10, 5, True)], 24, 80)
        self.assertIsNone(self.tracker.last_row)
        frame = self.tracker.update([drag(30, 20)], 24, 80)
        self.assertEqual((frame.dx, frame.dy), (0, 0))

    def test_right_drag_sets_light_target(self) -> None:
        frame = self.tracker.update([MouseEvent(RIGHT_DRAG_EVENT, 60, 2, False)], 24, 80)
        self.assertEqual(frame.light, Vec3(2 - 12.0, 60 - 40.0, 0.0))
        self.assertEqual((frame.dx, frame.dy), (0, 0))


class RuntimeTests(unittest.TestCase):
    def test_defaults(self) -> None:
        args = parse_arguments(["--once", "10x20"])
        config = _setup_runtime(args)
        self.assertEqual(config.fps, 50.0)
        self.assertAlmostEqual(config.frame_duration, 0.02)
        self.assertEqual(config.light, DEFAULT_LIGHT)
        self.assertEqual(config.once, (10, 20))
        self.assertEqual(config.warnings, [])

    def test_fps_clamped_with_warning(self) -> None:
        config = _setup_runtime(parse_arguments(["--fps", "0.2", "--once", "4x4"]))
        self.assertEqual(config.fps, 1.0)
        self.assertEqual(len(config.warnings), 1)

    def test_zero_light_falls_back(self) -> None:
        config = _setup_runtime(parse_arguments(["--light", "0", "0", "0", "--once", "4x4"]))
        self.assertEqual(config.light, DEFAULT_LIGHT)
        self.assertTrue(config.warnings)

    def test_light_threshold_matches_engine(self) -> None:
        config = _setup_runtime(parse_arguments(["--light", "0", "0", "0.0009", "--once", "4x4"]))
        self.assertEqual(config.light, DEFAULT_LIGHT)
        config = _setup_runtime(parse_arguments(["--light", "0", "0", "0.002", "--once", "4x4"]))
        self.assertEqual(config.light, Vec3(0.0, 0.0, 1.0))

    def test_bad_size_rejected(self) -> None:
        with mock.patch("sys.stderr", io.StringIO()):
            with self.assertRaises(SystemExit):
                parse_arguments(["--once", "ten"])

    def test_run_once_prints_frame(self) -> None:
        stdout = io.StringIO()
        with mock.patch("sys.stdout", stdout):
            run(["--once", "10x10"])
        lines = stdout.getvalue().split("\n")
        self.assertEqual(lines[-1], "")
        frame = lines[:-1]
        self.assertEqual(len(frame), 10)
        self.assertNotEqual(frame[5][5], " ")
        self.assertEqual(frame[0][0], " ")


class FrameLoopTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stdout = io.StringIO()
        patches = [
            mock.patch("sys.stdout", self.stdout),
            mock.patch("sys.stdin", io.StringIO()),
            mock.patch("sys.stderr", io.StringIO()),
            mock.patch.object(TerminalController, "get_size", return_value=os.terminal_size((20, 10))),
        ]
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)

    def test_frames_limit_stops_loop(self) -> None:
        before = signal.getsignal(signal.SIGTERM)
        run(["--frames", "3", "--fps", "1000"])
        output = self.stdout.getvalue()
        # One home sequence on entering the screen, then one per frame.
        self.assertEqual(output.count("\033[H"), 4)
        self.assertTrue(output.endswith("\033[?1049l"))
        self.assertEqual(signal.getsignal(signal.SIGTERM), before)

    def test_interrupt_restores_terminal(self) -> None:
        with mock.patch.object(TerminalController, "poll_mouse", side_effect=KeyboardInterrupt):
            run(["--frames", "3"])
        output = self.stdout.getvalue()
        self.assertIn("\033[?1049l", output)
        self.assertTrue(output.endswith("Interrupted. Bye!\n"))
        self.assertEqual(output.count("\033[?1049l"), 1)


if __name__ == "__main__":
    unittest.main()
