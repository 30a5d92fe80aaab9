"""numpy-based summary of a user's verification attempt history."""
import numpy as np

_FAILURE_CONDITIONS = {"WRONG_ANSWER"}
_EVALUATED_CONDITIONS = {"STEP_PASSED", "SUCCEEDED", "WRONG_ANSWER", "PERSISTENCE_FAILED"}


def analyze_attempts(attempts: list[dict]) -> dict:
    """
    Summarise evaluated attempts for one user.
    Rejected attempts (cooldown, malformed input) are counted separately and
    excluded from the failure rate and interval statistics.
    """
    evaluated = [a for a in attempts if a["condition"] in _EVALUATED_CONDITIONS]
    stats = {
        "attempt_count": len(evaluated),
        "rejected_count": len(attempts) - len(evaluated),
        "failure_count": 0,
        "failure_rate": 0.0,
        "interval_mean_s": None,
        "interval_std_s": None,
        "variants": {},
    }
    if not evaluated:
        return stats

    failures = np.array([a["condition"] in _FAILURE_CONDITIONS for a in evaluated], dtype=bool)
    stats["failure_count"] = int(failures.sum())
    stats["failure_rate"] = float(failures.mean())

    variants, counts = np.unique([a["variant"] for a in evaluated], return_counts=True)
    stats["variants"] = {str(v): int(c) for v, c in zip(variants, counts)}

    timestamps = np.sort(np.array([a["timestamp"] for a in evaluated], dtype=float))
    intervals = np.diff(timestamps)
    if len(intervals) > 0:
        stats["interval_mean_s"] = float(np.mean(intervals))
        stats["interval_std_s"] = float(np.std(intervals))

    return stats
