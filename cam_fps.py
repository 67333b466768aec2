# cam_fps.py
import sys, time, argparse, cv2
from cam_config import DEFAULT_CFG, BACKENDS, ConfigError, build_config, load_cfg
from cam_session import CameraError, CaptureSession
from fps_bench import Phase, TEST_DURATION_SEC, print_interval, print_summary, run_benchmark
from influx_line import InfluxLineClient

_CAM = DEFAULT_CFG["camera"]


def build_parser(prog=None):
    # -h bleibt Hilfe, Höhe ist -H. Defaults stehen nur im Hilfetext, damit
    # Werte aus --config nicht von argparse-Defaults überschrieben werden.
    ap = argparse.ArgumentParser(
        prog=prog,
        allow_abbrev=False,
        description=f"Open a camera, apply format/resolution/fps and measure the real frame rate over {TEST_DURATION_SEC} seconds.",
    )
    ap.add_argument("-d", "--device", metavar="DEV",
                    help=f"camera index or /dev/video<N> (default: {_CAM['device']})")
    ap.add_argument("-w", "-W", "--width", type=int, metavar="WIDTH",
                    help=f"frame width (default: {_CAM['width']})")
    ap.add_argument("-H", "--height", type=int, metavar="HEIGHT",
                    help=f"frame height (default: {_CAM['height']})")
    ap.add_argument("-f", "--format", metavar="FOURCC",
                    help=f"pixel format, e.g. MJPG, YUYV (default: {_CAM['format']})")
    ap.add_argument("-r", "--resolution", metavar="RES",
                    help="WIDTHxHEIGHT@FPS, e.g. 640x480@60; overrides width, height and fps")
    ap.add_argument("-s", "--fps", type=int, metavar="FPS",
                    help=f"target frames per second (default: {_CAM['fps']})")
    ap.add_argument("-b", "--backend", choices=list(BACKENDS),
                    help=f"OpenCV capture backend (default: {_CAM['backend']})")
    ap.add_argument("-c", "--config", metavar="PATH",
                    help="YAML file with camera defaults and optional influx export")
    return ap


def parse_args(argv=None):
    return build_parser().parse_args(argv)


def main(argv=None, capture_factory=cv2.VideoCapture, clock=time.monotonic) -> int:
    args = parse_args(argv)

    try:
        cfg = load_cfg(args.config) if args.config else None
        config = build_config(args, cfg)
    except ConfigError as e:
        print(f"[ERR] {e}", file=sys.stderr)
        return 1

    influx = InfluxLineClient.from_cfg((cfg or {}).get("influx"))
    if influx:
        print(f"[i] InfluxDB enabled: {influx.write_url} | bucket={influx.params['bucket']} | org={influx.params['org']}")

    print(f"[i] Opening camera {config.device} ({config.backend.upper()}) ...")
    session = CaptureSession(config, capture_factory=capture_factory)
    try:
        session.open()
    except CameraError as e:
        print(f"[ERR] {e}", file=sys.stderr)
        return 1
    print(f"[OK] Camera {config.device} opened.")

    intervals = []
    results = []

    def on_interval(fps):
        print_interval(fps)
        intervals.append((fps, time.time_ns()))

    def on_summary(summary):
        print_summary(summary)
        results.append(summary)

    with session:
        print(f"Testing camera: {config.width}x{config.height} @{config.fps}fps, format={config.format}")
        actual = session.actual_settings()
        print(f"[i] Camera reports: {actual['width']}x{actual['height']} @ {actual['fps']:.1f} FPS, format={actual['format']}")
        state = run_benchmark(session.read, clock=clock, on_interval=on_interval, on_summary=on_summary)

    if state.phase is Phase.FAILED:
        print(f"[WARN] Benchmark aborted after {state.total_frames} frames, no average computed.", file=sys.stderr)

    if influx:
        influx.write_results(config, intervals, results[0] if results else None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
