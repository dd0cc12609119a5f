from reviewflow.core.utils.slackify import create_link, quote, slackify_comment_body


def test_markdown_is_converted():
    body = "## Summary\n**Looks** good, see [docs](https://docs.acme.io) and ![shot](https://img.acme.io/a.png)"
    assert slackify_comment_body(body) == (
        "*Summary*\n*Looks* good, see <https://docs.acme.io|docs> and <https://img.acme.io/a.png|shot>"
    )


def test_suggestions_become_code_fences():
    body = "```suggestion\nreturn None\n```"
    assert slackify_comment_body(body) == "*Suggested change:*\n```\nreturn None\n```"
    assert slackify_comment_body(body, multiline=True).startswith("*Suggested change (multiple lines):*")


def test_empty_body():
    assert slackify_comment_body("") == ""


def test_quote_every_line():
    assert quote("one\n\ntwo") == "> one\n>\n> two"


def test_create_link():
    assert create_link("https://x.io", "x") == "<https://x.io|x>"
