"""Convert GitHub-flavored markdown into Slack mrkdwn."""

import re

_SUGGESTION_FENCE_RE = re.compile(r"```suggestion[^\n]*\n")
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_LINK_RE = re.compile(r"(?<!!)\[([^\]]+)\]\((https?://[^)\s]+)\)")
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\((https?://[^)\s]+)\)")
_HEADING_RE = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)


def slackify_comment_body(body: str, multiline: bool = False) -> str:
    """Return *body* rewritten for a Slack message.

    Suggestion blocks become plain code fences; ``multiline`` marks
    suggestions spanning several lines, which are annotated as such.
    """
    if not body:
        return ""

    text = body.replace("\r\n", "\n")
    suggestion_label = "*Suggested change (multiple lines):*\n" if multiline else "*Suggested change:*\n"
    text = _SUGGESTION_FENCE_RE.sub(lambda _: suggestion_label + "```\n", text)
    text = _IMAGE_RE.sub(lambda m: f"<{m.group(2)}|{m.group(1) or 'image'}>", text)
    text = _LINK_RE.sub(lambda m: f"<{m.group(2)}|{m.group(1)}>", text)
    text = _BOLD_RE.sub(r"*\1*", text)
    text = _HEADING_RE.sub(r"*\1*", text)
    return text


def quote(text: str) -> str:
    """Prefix every line with ``>`` so Slack renders a block quote."""
    return "\n".join(f"> {line}" if line else ">" for line in text.split("\n"))


def create_link(url: str, text: str) -> str:
    return f"<{url}|{text}>"
