"""Plain-text rendering of transcription segments."""

from .models import Segment


def format_timestamp(milliseconds: int, with_millis: bool = False) -> str:
    """Formats a millisecond offset as MM:SS or MM:SS.mmm."""
    total_seconds, millis = divmod(max(milliseconds, 0), 1000)
    minutes, seconds = divmod(total_seconds, 60)
    if with_millis:
        return f"{minutes:02d}:{seconds:02d}.{millis:03d}"
    return f"{minutes:02d}:{seconds:02d}"


class TranscriptFormatter:
    """Renders segments into the line-per-segment transcript layouts."""

    def render(self, segments: list[Segment], with_millis: bool = False) -> str:
        """
        Renders segments as `[start-end] speaker: content` lines.

        Args:
            segments: Segments in display order.
            with_millis: Include milliseconds in timestamps.

        Returns:
            The transcript text, one segment per line.
        """
        return "\n".join(
            self._render_line(segment, with_millis) for segment in segments
        )

    def _render_line(self, segment: Segment, with_millis: bool) -> str:
        start = format_timestamp(segment.start_ms, with_millis)
        end = format_timestamp(segment.end_ms, with_millis)
        return f"[{start}-{end}] {segment.speaker}: {segment.content}"
