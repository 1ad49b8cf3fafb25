"""Rate calculations between two container samples.

All timestamps are monotonic seconds. A baseline timestamp of ``0.0`` means
no previous sample exists and every rate is zero.

Functions:
    elapsed_seconds: Interval between baseline and now, 0.0 when unusable
    counter_delta: Difference of two cumulative counters, 0 on reset
    calculate_rate: Per-second rate of a cumulative counter
    calculate_cpu_percent: CPU percentage from clock-tick counters
"""

from __future__ import annotations

# Per-core ceiling for CPU percentages
MAX_CORE_PERCENT = 100.0


def elapsed_seconds(last_run: float, now: float) -> float:
    """Seconds between two samples.

    Returns:
        0.0 if there is no baseline or the clock went backwards
    """
    if last_run == 0.0:
        return 0.0
    elapsed = now - last_run
    return elapsed if elapsed > 0 else 0.0


def counter_delta(current: int, previous: int) -> int:
    """Difference of two unsigned cumulative counters.

    A counter lower than its previous value was reset (container restart,
    counter wrap); the interval then contributes nothing.
    """
    if previous > current:
        return 0
    return current - previous


def calculate_rate(current: int, previous: int, last_run: float, now: float) -> float:
    """Per-second rate of a cumulative counter.

    Args:
        current: Counter value now
        previous: Counter value at ``last_run``
        last_run: Monotonic time of the previous sample (0.0 = none)
        now: Monotonic time of the current sample

    Returns:
        Rate per second, 0.0 without a usable interval
    """
    elapsed = elapsed_seconds(last_run, now)
    if elapsed <= 0:
        return 0.0
    return counter_delta(current, previous) / elapsed


def calculate_cpu_percent(
    current: int, previous: int, num_cpus: int, last_run: float, now: float
) -> float:
    """CPU percentage from cumulative clock-tick counters.

    With 100 ticks per second the per-second delta is already a percentage of
    one core. It is clamped to 100 and scaled by the logical CPU count, the
    way ``top`` reports it (a busy loop reads 100 regardless of core count).

    Returns:
        Percentage in ``[0, 100 * num_cpus]``
    """
    rate = calculate_rate(current, previous, last_run, now)
    # Counter resets and sampling jitter can push the rate past one core
    rate = min(rate, MAX_CORE_PERCENT)
    return rate * max(num_cpus, 1)
