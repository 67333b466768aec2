# influx_line.py
import time, requests


def _escape_tag(value) -> str:
    return str(value).replace("\\", "\\\\").replace(",", "\\,").replace(" ", "\\ ").replace("=", "\\=")


class InfluxLineClient:
    """Writes benchmark results as InfluxDB v2 line protocol. Failures only warn."""

    def __init__(self, url: str, org: str, bucket: str, token: str, timeout: float = 2):
        base = url.rstrip("/")
        self.write_url = f"{base}/api/v2/write"
        self.params = {"org": org, "bucket": bucket, "precision": "ns"}
        self.headers = {
            "Authorization": f"Token {token}",
            "Content-Type": "text/plain; charset=utf-8"
        }
        self.timeout = timeout

    @classmethod
    def from_cfg(cls, influx_cfg: dict):
        """None unless the ``influx`` config section is enabled."""
        if not influx_cfg or not influx_cfg.get("enabled"):
            return None
        return cls(
            url=influx_cfg.get("url") or "http://localhost:8086",
            org=influx_cfg.get("org") or "example-org",
            bucket=influx_cfg.get("bucket") or "camera",
            token=influx_cfg.get("token") or ""
        )

    @staticmethod
    def _tags(config) -> str:
        return (f"device={config.device},format={_escape_tag(config.format)},"
                f"resolution={config.resolution}")

    def interval_line(self, config, fps: int, ts_ns=None) -> str:
        ts_ns = time.time_ns() if ts_ns is None else ts_ns
        return f"camera_fps,{self._tags(config)} fps={int(fps)}i,target_fps={int(config.fps)}i {ts_ns}"

    def summary_line(self, config, summary, ts_ns=None) -> str:
        ts_ns = time.time_ns() if ts_ns is None else ts_ns
        return (
            f"camera_benchmark,{self._tags(config)} "
            f"frames={int(summary.total_frames)}i,seconds={int(summary.seconds)}i,"
            f"avg_fps={float(summary.avg_fps)},target_fps={int(config.fps)}i "
            f"{ts_ns}"
        )

    def write_results(self, config, intervals, summary=None) -> bool:
        """Single batched write after the run; nothing is sent while capturing.
        ``intervals`` holds ``(fps, ts_ns)`` pairs."""
        lines = [self.interval_line(config, fps, ts) for fps, ts in intervals]
        if summary is not None:
            lines.append(self.summary_line(config, summary))
        if not lines:
            return True
        return self._write("\n".join(lines))

    def _write(self, line: str) -> bool:
        try:
            resp = requests.post(self.write_url, params=self.params, data=line,
                                 headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            print(f"[WARN] Influx write error: {e}")
            return False
        if not resp.ok:
            print(f"[WARN] Influx write failed: {resp.status_code} {resp.text[:200]}")
            return False
        return True
