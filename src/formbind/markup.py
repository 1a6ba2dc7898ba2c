"""
HTML fragment building for formbind.
"""

from typing import Dict, Optional


class Element(str):
    """A rendered HTML fragment.

    Implements ``__html__`` so template engines that understand the markup
    protocol (Jinja2, MarkupSafe) insert it without escaping it again.
    """

    def __html__(self) -> str:
        return str(self)

    def __add__(self, other: str) -> 'Element':
        return Element(str.__add__(self, other))


def build_tag(tag: str, attrs: Dict[str, Optional[str]]) -> str:
    """
    Build an opening HTML tag with attributes.

    Args:
        tag: Tag name
        attrs: Dictionary of attributes (value=None for boolean attributes)

    Returns:
        HTML tag string
    """
    attr_parts = []
    for key, value in attrs.items():
        if value is None:
            attr_parts.append(key)
        else:
            attr_parts.append(f'{key}="{escape_attr(value)}"')

    attr_str = ' ' + ' '.join(attr_parts) if attr_parts else ''
    return f'<{tag}{attr_str}>'


def escape_html(text: str) -> str:
    """Escape HTML special characters."""
    if not text:
        return ''
    return (text
            .replace('&', '&amp;')
            .replace('<', '&lt;')
            .replace('>', '&gt;')
            .replace('"', '&quot;')
            .replace("'", '&#x27;'))


def escape_attr(text: str) -> str:
    """Escape HTML attribute values."""
    if not text:
        return ''
    return (text
            .replace('&', '&amp;')
            .replace('"', '&quot;')
            .replace('<', '&lt;')
            .replace('>', '&gt;'))


def render_page(body: str, title: Optional[str] = None, text: Optional[str] = None) -> str:
    """
    Wrap a form fragment in a standalone HTML document.

    Args:
        body: Rendered form markup
        title: Page title
        text: Instructional text above the form

    Returns:
        Complete HTML document string
    """
    title_html = f'<h1>{escape_html(title)}</h1>' if title else ''
    text_html = f'<p>{escape_html(text)}</p>' if text else ''

    return f'''<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape_html(title) if title else 'Form'}</title>
    <style>
        body {{
            font-family: system-ui, -apple-system, sans-serif;
            max-width: 600px;
            margin: 40px auto;
            padding: 20px;
        }}
        label {{
            display: block;
            margin: 15px 0 5px;
            font-weight: 500;
        }}
        input, select, textarea {{
            width: 100%;
            padding: 8px;
            border: 1px solid #ccc;
            border-radius: 4px;
            box-sizing: border-box;
        }}
        input[type="checkbox"], input[type="radio"] {{
            width: auto;
            margin-right: 8px;
        }}
        button {{
            margin-top: 20px;
            padding: 10px 20px;
            background: #007bff;
            color: white;
            border: none;
            border-radius: 4px;
            cursor: pointer;
            margin-right: 10px;
        }}
        .errors {{
            color: #dc3545;
        }}
    </style>
</head>
<body>
    {title_html}
    {text_html}
    {body}
</body>
</html>'''
