import asyncio
import os
import random

from pacing_core import max_retries
from pacing_core.otel_setup import init_tracer, init_metrics
from pacing_core.otel_runtime import retry_traced_optional

# Enable tracing / metrics via env (can still be disabled by user)
os.environ.setdefault("PACING_OTEL_ENABLED", "1")
os.environ.setdefault("PACING_OTEL_METRICS_ENABLED", "1")

# Defaults for local collector
os.environ.setdefault("OTEL_EXPORTER_OTLP_ENDPOINT", "http://127.0.0.1:4317")


async def flaky_op(ctx: dict) -> str:
    """Fails randomly (to trigger retries) and sleeps a bit for non-zero latency."""
    if random.random() < ctx["fail_prob"]:
        raise RuntimeError("transient boom in pacing-core smoke demo")

    await asyncio.sleep(random.uniform(0.02, 0.15))
    return "ok"


def retry_errors_after_50ms(value, error, attempts):
    return 50 if error is not None else False


async def main() -> None:
    # PACING_OTEL_EXPORTER=http (default) | grpc
    exporter = os.getenv("PACING_OTEL_EXPORTER", "http").lower()
    if exporter not in ("http", "grpc"):
        print(f"[pacing-core] Unknown PACING_OTEL_EXPORTER={exporter!r}, falling back to 'http'")
        exporter = "http"

    service_name = "pacing-core-otel-smoke"
    init_tracer(service_name=service_name, exporter=exporter)
    init_metrics(service_name=service_name, exporter=exporter)

    n_ops = int(os.getenv("PACING_SMOKE_OPS", "50"))
    fail_prob = float(os.getenv("PACING_SMOKE_FAIL_PROB", "0.5"))

    print(f"[pacing-core] running smoke: n_ops={n_ops}, fail_prob={fail_prob}, exporter={exporter}")

    policy = max_retries(2, retry_errors_after_50ms)

    for i in range(n_ops):
        ctx = {"fail_prob": fail_prob}
        try:
            result = await retry_traced_optional(
                lambda: flaky_op(ctx),
                policy,
                otel_enabled=True,
                span_name="pacing.smoke",
                base_attrs={"pacing.demo_op_index": i},
            )
            print(f"[pacing-core] op #{i} -> {result}")
        except Exception as exc:
            print(f"[pacing-core] op #{i} failed after retries: {exc!r}")

    print("[pacing-core] smoke run complete")


if __name__ == "__main__":
    asyncio.run(main())
