"""
Structural HTML validator.

Gatekeeper that runs before any tree parsing.  Unlike the tree builders used
later (html5lib silently repairs anything), this module REJECTS markup that
is not well formed, so that broken sources surface as errors instead of as
quietly mangled sections.

Checks, in the order they are met while scanning left to right:
  1. Tag syntax       : '<' followed directly by a letter, '</' followed
                         directly by the tag name
  2. Whitelist        : tag names (case-insensitive) must be allowed
  3. Tag balance      : closing tags must match the innermost open tag and
                         nothing may remain open at the end (skipped in
                         lenient mode)
"""

import re
from typing import Optional

from .config import ValidatorConfig
from .exceptions import (
    MalformedTagSyntaxError,
    NoTagsFoundError,
    UnclosedTagsError,
    UnmatchedClosingTagError,
    UnsupportedTagError,
)
from .logger import get_module_logger

logger = get_module_logger("validator")

# Elements that never take a closing tag
VOID_TAGS = frozenset([
    'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input', 'link',
    'meta', 'param', 'source', 'track', 'wbr',
])

# Elements whose content is raw text; a '<' inside them is not a tag
RAW_TEXT_TAGS = frozenset(['script', 'style'])

# <name attr="v" attr='v' attr=v attr ... > or .../>
# Attribute values may contain '>' when quoted.  After a quoted value the
# next attribute may follow without whitespace (<a href="x"class="y">).
OPEN_TAG_PATTERN = re.compile(
    r'<([A-Za-z][A-Za-z0-9-]*)'
    r'((?:(?:\s+|(?<=["\']))[^\s"\'<>/=]+(?:\s*=\s*(?:"[^"]*"|\'[^\']*\'|[^\s"\'=<>`]+))?)*)'
    r'\s*(/?)>'
)

# </name  > (no whitespace allowed between '</' and the name)
CLOSE_TAG_PATTERN = re.compile(r'</([A-Za-z][A-Za-z0-9-]*)\s*>')

# Markup that is not an element tag and is skipped entirely
SPECIAL_BLOCKS = (
    ('<!--', '-->'),
    ('<![CDATA[', ']]>'),
    ('<!', '>'),        # <!DOCTYPE ...>
    ('<?', '>'),        # processing instructions
)


class HtmlValidator:
    """Validates HTML syntax, tag whitelist and tag balance."""

    def __init__(self, config: Optional[ValidatorConfig] = None):
        self.config = config or ValidatorConfig()
        self._allowed = frozenset(t.lower() for t in self.config.allowed_tags)

    def validate(self, html: str, require_tags: bool = False) -> None:
        """
        Validate an HTML string.

        Args:
            html: HTML content to validate
            require_tags: Fail when the input contains no element tags at all

        Raises:
            MalformedTagSyntaxError, UnsupportedTagError,
            UnmatchedClosingTagError, UnclosedTagsError, NoTagsFoundError
        """
        # Nothing to check.  Empty input is valid regardless of options.
        if not html or not html.strip():
            return

        tag_count = self._scan(html)

        if require_tags and tag_count == 0:
            raise NoTagsFoundError(
                "Invalid HTML: no tags found",
                details={"html": html[:100]}
            )

        logger.debug(f"Validated {tag_count} tags")

    def _scan(self, html: str) -> int:
        """Walk the markup once, raising on the first violation. Returns the tag count."""
        stack: list[str] = []
        tag_count = 0
        pos = 0
        length = len(html)

        while True:
            pos = html.find('<', pos)
            if pos == -1:
                break

            skipped_to = self._skip_special_block(html, pos)
            if skipped_to is not None:
                pos = skipped_to
                continue

            if html.startswith('</', pos):
                match = CLOSE_TAG_PATTERN.match(html, pos)
                if not match:
                    raise self._malformed(html, pos)
                name = match.group(1).lower()
                self._check_allowed(name, match.group(1))
                tag_count += 1
                pos = match.end()
                if name not in VOID_TAGS:
                    self._close(stack, name)
                continue

            match = OPEN_TAG_PATTERN.match(html, pos)
            if not match:
                raise self._malformed(html, pos)

            name = match.group(1).lower()
            self._check_allowed(name, match.group(1))
            tag_count += 1
            pos = match.end()

            self_closing = match.group(3) == '/' or name in VOID_TAGS
            if self_closing:
                continue

            if name in RAW_TEXT_TAGS:
                # Raw text runs until the matching close tag; a '<' inside a
                # script body is not markup.
                end = re.compile(rf'</{name}\s*>', re.IGNORECASE).search(html, pos)
                if end is None:
                    stack.append(name)
                    pos = length
                else:
                    tag_count += 1
                    pos = end.end()
                continue

            stack.append(name)

        if stack and not self.config.lenient_parsing:
            raise UnclosedTagsError(
                "Invalid HTML: unclosed tags detected",
                details={"unclosed_tags": stack}
            )

        return tag_count

    def _skip_special_block(self, html: str, pos: int) -> Optional[int]:
        """Return the position after a comment/doctype/CDATA/PI, or None."""
        for opener, closer in SPECIAL_BLOCKS:
            if html.startswith(opener, pos):
                end = html.find(closer, pos + len(opener))
                if end == -1:
                    raise MalformedTagSyntaxError(
                        "Invalid HTML: malformed tag syntax",
                        details={"reason": f"unterminated '{opener}'", "position": pos}
                    )
                return end + len(closer)
        return None

    def _check_allowed(self, name: str, raw_name: str) -> None:
        if self._allowed and name not in self._allowed:
            raise UnsupportedTagError(raw_name, details={"tag": raw_name})

    def _close(self, stack: list[str], name: str) -> None:
        """Pop a matching open tag or fail on imbalance."""
        if stack and stack[-1] == name:
            stack.pop()
            return

        if not self.config.lenient_parsing:
            raise UnmatchedClosingTagError(
                "Invalid HTML: unmatched closing tag",
                details={"tag": name, "last_tag": stack[-1] if stack else None}
            )

        # Lenient: unwind to the nearest matching opener, ignore strays
        if name in stack:
            while stack.pop() != name:
                pass

    @staticmethod
    def _malformed(html: str, pos: int) -> MalformedTagSyntaxError:
        return MalformedTagSyntaxError(
            "Invalid HTML: malformed tag syntax",
            details={"position": pos, "near": html[pos:pos + 30]}
        )


def validate_html(html: str, require_tags: bool = False,
                  config: Optional[ValidatorConfig] = None) -> None:
    """Convenience function to validate HTML with the default rules."""
    HtmlValidator(config).validate(html, require_tags=require_tags)
