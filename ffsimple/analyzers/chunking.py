"""Turn detected silences into chunk ranges that end on silence boundaries."""

from ffsimple.models import TimeRange


def _covering_silence(start: float, end: float, silences: list[TimeRange]) -> TimeRange | None:
    """The silence that contains [start, end] and reaches furthest, if any."""
    covering = [s for s in silences if s.start <= start and end <= s.end]
    return max(covering, key=lambda s: s.end, default=None)


def map_silences_to_chunk_ranges(
    silences: list[TimeRange],
    chunk_duration: float,
    total_duration: float,
) -> list[TimeRange]:
    """Split ``[0, total_duration]`` into chunks of at most ``chunk_duration``.

    Each chunk is cut at the latest silence that starts inside its budget;
    when no silence starts there, the cut falls exactly on the budget
    boundary. Chunks lying entirely inside a silence are dropped and the
    cursor moves to the end of that silence, so a long pause never turns
    into a run of empty chunks.

    ``silences`` need not be sorted.
    """
    if chunk_duration <= 0:
        raise ValueError(f"chunk_duration must be positive, got {chunk_duration}")

    if chunk_duration >= total_duration:
        return [TimeRange(start=0, end=total_duration)]

    chunks: list[TimeRange] = []
    cursor = 0.0

    while cursor < total_duration:
        chunk_end = min(cursor + chunk_duration, total_duration)
        cut = max(
            (s for s in silences if cursor < s.start <= chunk_end),
            key=lambda s: s.start,
            default=None,
        )

        start = cursor
        end = cut.start if cut is not None else chunk_end
        cursor = end

        if end <= start:
            break

        covering = _covering_silence(start, end, silences)
        if covering is not None:
            cursor = max(cursor, min(covering.end, total_duration))
            continue

        chunks.append(TimeRange(start=start, end=end))

    return chunks
