"""
Inline HTML documents served by the gateway.
"""

from html import escape
from typing import Iterable
from urllib.parse import quote

from ipfsgate.core.content_key import LinkEntry


def error_page(code: int, status: str) -> str:
    """Generate HTML error page."""
    title = escape(f"{code} {status}")
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            color: #333;
            padding: 40px;
        }}
        h1 {{
            font-size: 1.6em;
            margin-bottom: 10px;
        }}
        .footer {{
            margin-top: 30px;
            color: #999;
            font-size: 0.9em;
        }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <div class="footer">IPFS gateway</div>
</body>
</html>"""


def redirect_document(url: str) -> str:
    """
    Meta-refresh redirect.

    Header based redirects break custom scheme handlers in the host runtime,
    so folder redirects are done in the document instead.
    """
    return f'<meta http-equiv="refresh" content="0;URL={escape(url, quote=True)}">'


def directory_listing(req_path: str, links: Iterable[LinkEntry]) -> str:
    """
    File listing for a directory without an index.

    Args:
        req_path: Requested directory path (ends with '/')
        links: Link table of the directory

    Returns:
        HTML with one relative anchor per named link, plus '..' below the root
    """
    up_link = "" if req_path == "/" else '<p><a href="..">..</a></p>'
    entries = "".join(
        f'<p><a href="./{quote(link.name)}">{escape(link.name)}</a></p>'
        for link in links
        if link.name
    )
    return f"<h1>File listing for {escape(req_path)}</h1>{up_link}{entries}"
