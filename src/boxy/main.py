"""Interactive entry point for the terminal cube renderer."""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple, cast

from .renderer.engine import DEFAULT_LIGHT, LIGHT_MIN_LENGTH, CubeEngine, Vec3
from .renderer.terminal import LEFT_DRAG_EVENT, RIGHT_DRAG_EVENT, MouseEvent, TerminalController

DEFAULT_FPS = 50.0

# Character cells are roughly twice as tall as they are wide.
ROW_DRAG_WEIGHT = 2


def _parse_size(value: str) -> Tuple[int, int]:
    try:
        rows_text, cols_text = value.lower().split("x")
        rows, cols = int(rows_text), int(cols_text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected ROWSxCOLS, got '{value}'") from exc
    return rows, cols


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boxy",
        description="Shaded ASCII cube for your terminal. Left-drag rotates, right-drag moves the light.",
    )
    parser.add_argument(
        "--fps",
        type=float,
        default=DEFAULT_FPS,
        help=f"Target frames per second (default: {DEFAULT_FPS:g})",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=0,
        help="Run for a fixed number of frames (0 = infinite)",
    )
    parser.add_argument(
        "--light",
        type=float,
        nargs=3,
        metavar=("X", "Y", "Z"),
        default=(DEFAULT_LIGHT.x, DEFAULT_LIGHT.y, DEFAULT_LIGHT.z),
        help="Initial light direction (x down, y right, z towards the viewer)",
    )
    parser.add_argument(
        "--once",
        type=_parse_size,
        metavar="ROWSxCOLS",
        default=None,
        help="Print a single frame of the given size to stdout and exit",
    )
    return parser


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


@dataclass
class FrameInput:
    """Everything the engine needs from one frame's worth of mouse events."""

    dx: int = 0
    dy: int = 0
    light: Optional[Vec3] = None


@dataclass
class DragTracker:
    """Collapses raw mouse reports into one drag delta per frame.

    Only the last left-drag report of a frame counts. Any other report drops
    the drag anchor, so the next drag starts from rest instead of jumping.
    """

    last_row: Optional[int] = None
    last_col: Optional[int] = None

    def update(self, events: Sequence[MouseEvent], rows: int, cols: int) -> FrameInput:
        frame_pos: Optional[Tuple[int, int]] = None
        released = False
        light_target: Optional[Tuple[int, int]] = None

        for event in events:
            if event.button == LEFT_DRAG_EVENT:
                frame_pos = (event.row, event.col)
                released = False
            else:
                frame_pos = None
                released = True

            if event.button == RIGHT_DRAG_EVENT:
                light_target = (event.row, event.col)

        if released:
            self.last_row = self.last_col = None

        result = FrameInput()
        if frame_pos is not None:
            row, col = frame_pos
            if self.last_row is not None and self.last_col is not None:
                result.dx = row - self.last_row
                result.dy = col - self.last_col
            self.last_row, self.last_col = row, col

        if light_target is not None:
            row, col = light_target
            result.light = Vec3(row - rows / 2.0, col - cols / 2.0, 0.0)

        return result


@dataclass
class RuntimeConfig:
    fps: float
    frame_duration: float
    frames: int
    light: Vec3
    once: Optional[Tuple[int, int]]
    warnings: list[str] = field(default_factory=list)


def _ensure_light_vector(vector: Sequence[float], warnings: list[str]) -> Vec3:
    vec = Vec3(*vector)
    if vec.length() <= LIGHT_MIN_LENGTH:
        warnings.append("Light vector too short; falling back to the default (0, 1, 0)")
        return DEFAULT_LIGHT
    return vec.normalized()


def _setup_runtime(args: argparse.Namespace) -> RuntimeConfig:
    warnings: list[str] = []

    fps = args.fps
    if fps < 1.0:
        warnings.append(f"FPS {fps:g} is below 1; clamping to 1")
        fps = 1.0

    frames = max(0, args.frames)
    light = _ensure_light_vector(tuple(args.light), warnings)

    once = args.once
    if once is None and not sys.stdin.isatty():
        warnings.append("stdin is not a terminal; mouse input is disabled")

    return RuntimeConfig(
        fps=fps,
        frame_duration=1.0 / fps,
        frames=frames,
        light=light,
        once=once,
        warnings=warnings,
    )


def _emit_warnings(warnings: Sequence[str]) -> None:
    if not warnings:
        return
    for warning in warnings:
        sys.stderr.write(f"[boxy] {warning}\n")
    sys.stderr.flush()


def _render_once(engine: CubeEngine, rows: int, cols: int) -> None:
    frame = cast(str, engine.render(rows, cols, output_format="text"))
    sys.stdout.write(frame)
    sys.stdout.write("\n")
    sys.stdout.flush()


def _run_loop(config: RuntimeConfig, engine: CubeEngine) -> None:
    controller = TerminalController()
    tracker = DragTracker()
    frame_counter = 0

    with controller:
        try:
            while True:
                frame_start = time.perf_counter()

                rows, cols = controller.size_tuple()
                frame_input = tracker.update(controller.poll_mouse(), rows, cols)

                engine.rotate(frame_input.dx * ROW_DRAG_WEIGHT, frame_input.dy)
                if frame_input.light is not None:
                    engine.set_light(frame_input.light)

                controller.draw(cast(str, engine.render(rows, cols, output_format="text")))

                frame_counter += 1
                if config.frames and frame_counter >= config.frames:
                    break

                frame_time = time.perf_counter() - frame_start
                sleep_time = config.frame_duration - frame_time
                if sleep_time > 0:
                    time.sleep(sleep_time)
        except KeyboardInterrupt:
            controller.restore()
            sys.stdout.write("Interrupted. Bye!\n")
            sys.stdout.flush()


def run(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_arguments(argv)
    config = _setup_runtime(args)
    _emit_warnings(config.warnings)

    engine = CubeEngine(light_direction=config.light)
    if config.once is not None:
        rows, cols = config.once
        _render_once(engine, rows, cols)
        return

    _run_loop(config, engine)


def main() -> None:
    run()


if __name__ == "__main__":
    main()
