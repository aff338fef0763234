import argparse
import threading
import time
from datetime import datetime
from pathlib import Path

import requests

REPORTS_DIR = Path(__file__).resolve().parent / "knowledge"

BASE_URL = "http://127.0.0.1:8081"
FAILED_MS = 9999.0


def _write(p: Path, s: str) -> None:
    with open(p, "w", encoding="utf-8") as f:
        f.write(s)


def _measure(url: str, timeout: float = 60.0) -> float:
    """Elapsed milliseconds for one GET, or FAILED_MS when the request fails."""
    start = time.perf_counter()
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException:
        return FAILED_MS
    return (time.perf_counter() - start) * 1000


def concurrent_probe(base_url: str = BASE_URL, delay_s: float = 0.05) -> dict:
    """
    Send /hello twice, the second one ``delay_s`` after the first.

    The requests count as blocked when they overlapped and the second one
    finished at least half a first-request-duration after the first: with
    inline load the second request only starts being served once the first
    is done, with offloaded load both finish close together.
    """
    url = base_url.rstrip("/") + "/hello"
    started: dict[str, float] = {}
    finished: dict[str, float] = {}
    elapsed: dict[str, float] = {}

    def _hit(name: str) -> None:
        started[name] = time.perf_counter()
        elapsed[name] = _measure(url)
        finished[name] = time.perf_counter()

    first = threading.Thread(target=_hit, args=("first",))
    second = threading.Thread(target=_hit, args=("second",))
    first.start()
    time.sleep(delay_s)
    second.start()
    first.join()
    second.join()

    failed = FAILED_MS in elapsed.values()
    overlapped = started["second"] < finished["first"]
    first_s = finished["first"] - started["first"]
    lag_s = finished["second"] - finished["first"]
    return {
        "first_ms": elapsed["first"],
        "second_ms": elapsed["second"],
        "lag_ms": lag_s * 1000,
        "blocked": (not failed) and overlapped and lag_s >= 0.5 * first_s,
        "failed": failed,
    }


def _write_report(base_url: str, baseline_ms: float, probe: dict) -> Path:
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)
    ts = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
    report_path = REPORTS_DIR / f"blocking-report-{ts}.md"
    if probe["failed"]:
        verdict = "Probe failed, server unreachable or erroring"
    elif probe["blocked"]:
        verdict = "Second request waited for the first (head-of-line blocking)"
    else:
        verdict = "Second request did not wait for the first"
    _write(report_path, f"""# Blocking Probe Report

**Timestamp (UTC):** {datetime.utcnow().isoformat()}
**Target:** {base_url}

## Measurements
- Single /hello:      {baseline_ms:.1f} ms
- First concurrent:   {probe['first_ms']:.1f} ms
- Second concurrent:  {probe['second_ms']:.1f} ms
- Second after first: {probe['lag_ms']:.1f} ms

## Result
- {verdict}
""")
    return report_path


def run(base_url: str = BASE_URL, delay_s: float = 0.05) -> dict:
    baseline_ms = _measure(base_url.rstrip("/") + "/hello")
    print(f"[probe] Target={base_url} | Baseline={baseline_ms:.1f} ms")

    probe = concurrent_probe(base_url, delay_s)
    print(f"[probe] First={probe['first_ms']:.1f} ms | Second={probe['second_ms']:.1f} ms | Blocked={probe['blocked']}")

    report_path = _write_report(base_url, baseline_ms, probe)
    return {
        "base_url": base_url,
        "baseline_ms": baseline_ms,
        **probe,
        "report_path": str(report_path),
    }


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Check whether a running /hello server blocks concurrent requests")
    parser.add_argument("--url", default=BASE_URL, help=f"Server base URL (default: {BASE_URL})")
    parser.add_argument("--delay", type=float, default=0.05, help="Seconds between the two concurrent requests")
    args = parser.parse_args(argv)
    res = run(args.url, args.delay)
    print(f"[probe] Report written to {res['report_path']}")


if __name__ == "__main__":
    main()
