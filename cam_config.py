# cam_config.py
import os, re, copy, cv2, yaml
from dataclasses import dataclass

DEFAULT_CFG = {
    "camera": {
        "device": "0",
        "width": 640,
        "height": 480,
        "format": "MJPG",
        "fps": 30,
        "backend": "v4l2",
    },
    "influx": {
        "enabled": False,
        "url": "http://localhost:8086",
        "org": "example-org",
        "bucket": "camera",
        "token": ""
    }
}

# Name -> OpenCV-Backend. V4L2 ist der Default (Linux, /dev/videoN).
BACKENDS = {
    "auto": None,
    "any": cv2.CAP_ANY,
    "v4l2": cv2.CAP_V4L2,
    "dshow": cv2.CAP_DSHOW,
    "msmf": cv2.CAP_MSMF,
}

_RES_RE = re.compile(r"(\d+)x(\d+)@(\d+)")
_DEV_PREFIX = "/dev/video"


class ConfigError(ValueError):
    """Invalid command line or config file value. Raised before any device is opened."""


@dataclass(frozen=True)
class CameraConfig:
    device: int
    width: int
    height: int
    format: str
    fourcc: int
    fps: int
    backend: str = "v4l2"

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def backend_flag(self):
        return BACKENDS[self.backend]


def parse_resolution(text: str):
    """Parse ``WIDTHxHEIGHT@FPS`` (e.g. ``640x480@60``) into three ints."""
    m = _RES_RE.fullmatch(str(text).strip())
    if not m:
        raise ConfigError(f"Invalid resolution format: {text!r}. Use WIDTHxHEIGHT@FPS (e.g., 640x480@60).")
    width, height, fps = (int(g) for g in m.groups())
    if width <= 0 or height <= 0 or fps <= 0:
        raise ConfigError(f"Invalid resolution: {text!r}. Width, height and fps must be > 0.")
    return width, height, fps


def fourcc_from_string(fmt: str) -> int:
    if len(fmt) != 4 or not fmt.isascii():
        raise ConfigError(f"Invalid format: {fmt}")
    code = int(cv2.VideoWriter_fourcc(*fmt))
    if code == 0:
        raise ConfigError(f"Invalid format: {fmt!r}")
    return code


def fourcc_to_string(code) -> str:
    code = int(code)
    return "".join(chr((code >> (8 * i)) & 0xFF) for i in range(4))


def parse_device(text) -> int:
    """Device index from ``"2"`` or ``"/dev/video2"``."""
    s = str(text).strip()
    if s.startswith(_DEV_PREFIX):
        s = s[len(_DEV_PREFIX):]
    if not (s.isascii() and s.isdigit()):
        raise ConfigError(f"Invalid device: {text!r}. Use an index (0) or /dev/video<N>.")
    return int(s)


def _positive(name, value) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid {name}: {value!r}") from None
    if n <= 0:
        raise ConfigError(f"Invalid {name}: {value!r} (must be > 0)")
    return n


def load_cfg(path="config.yaml"):
    """Load a YAML config on top of DEFAULT_CFG. Missing file -> defaults."""
    cfg = copy.deepcopy(DEFAULT_CFG)
    if not os.path.exists(path):
        print(f"[WARN] {path} not found, using defaults.")
        return cfg
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML ({e})") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    for section, values in data.items():
        if section in cfg and isinstance(cfg[section], dict):
            if values is None:
                values = {}
            if not isinstance(values, dict):
                raise ConfigError(f"{path}: section '{section}' must be a mapping")
            cfg[section].update(values)
        else:
            cfg[section] = values
    return cfg


def build_config(args, cfg=None) -> CameraConfig:
    """Merge parsed args over the config file values and validate everything.

    Command line wins over the config file, the config file over DEFAULT_CFG.
    A ``resolution`` key in the file only replaces the file's width, height
    and fps; ``--resolution`` on the command line overrides all three.
    """
    cam = dict(DEFAULT_CFG["camera"])
    if cfg:
        cam.update(cfg.get("camera") or {})
    file_resolution = cam.pop("resolution", None)
    if file_resolution is not None:
        cam["width"], cam["height"], cam["fps"] = parse_resolution(file_resolution)

    def pick(name):
        value = getattr(args, name, None)
        return cam.get(name) if value is None else value

    device = parse_device(pick("device"))
    fmt = str(pick("format"))

    resolution = getattr(args, "resolution", None)
    if resolution is not None:
        width, height, fps = parse_resolution(resolution)
    else:
        width = _positive("width", pick("width"))
        height = _positive("height", pick("height"))
        fps = _positive("fps", pick("fps"))

    fourcc = fourcc_from_string(fmt)

    backend = str(pick("backend")).lower()
    if backend not in BACKENDS:
        raise ConfigError(f"Invalid backend: {backend!r} (choose from {', '.join(BACKENDS)})")

    return CameraConfig(device=device, width=width, height=height,
                        format=fmt, fourcc=fourcc, fps=fps, backend=backend)
