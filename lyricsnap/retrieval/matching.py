"""Map model output back to the candidate lyric lines it was chosen from.

The model is asked to echo a candidate verbatim, but it may add quotes, the
track name or a paraphrase. A returned line matches a candidate when the
candidate's stored text is a substring of it. When several candidates match
(short, generic lines), the first one in candidate order wins.
"""

from lyricsnap.models import Candidate


def match_line(output_line: str, candidates: list[Candidate]) -> Candidate | None:
    """First candidate whose text appears in ``output_line``, else None."""
    if not output_line:
        return None
    for candidate in candidates:
        if candidate.text and candidate.text in output_line:
            return candidate
    return None


def split_output_lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


def match_lines(output: str, candidates: list[Candidate], limit: int | None = None) -> list[Candidate]:
    """
    Match every non-empty output line to a candidate.

    Unmatched lines are dropped, as are lines that pick a candidate already
    chosen by an earlier line. At most ``limit`` candidates are returned.
    """
    chosen = []
    seen = set()
    for line in split_output_lines(output):
        candidate = match_line(line, candidates)
        if candidate is None or candidate.chunk_id in seen:
            continue
        seen.add(candidate.chunk_id)
        chosen.append(candidate)
        if limit is not None and len(chosen) >= limit:
            break
    return chosen
