"""
临床笔记内容的Markdown渲染与HTML净化
"""
import bleach
import markdown

ALLOWED_TAGS = [
    'p', 'br', 'strong', 'em', 'b', 'i', 'u', 'a',
    'ul', 'ol', 'li',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    'blockquote', 'code', 'pre', 'hr',
    'table', 'thead', 'tbody', 'tr', 'th', 'td',
]

ALLOWED_ATTRIBUTES = {
    'a': ['href', 'title'],
    'th': ['align'],
    'td': ['align'],
}

ALLOWED_PROTOCOLS = ['http', 'https', 'mailto']

# 换行转为 <br>，并支持代码块和表格
MARKDOWN_EXTENSIONS = ['nl2br', 'fenced_code', 'tables']


def render_markdown(text):
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def sanitize_html(html_content):
    """移除白名单以外的标签、属性和URL协议"""
    return bleach.clean(
        html_content,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def render_note_content(text):
    """将Markdown笔记内容渲染为可安全存储和展示的HTML"""
    return sanitize_html(render_markdown(text))
