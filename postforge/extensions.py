from __future__ import annotations

import re

from markdown.extensions import Extension
from markdown.preprocessors import Preprocessor

# Same opener shape fenced_code accepts: the fence, then an optional
# {attr list} or language, and nothing else on the line.
FENCE_OPEN_RE = re.compile(r"^(?P<fence>`{3,}|~{3,})[ ]*(\{[^\n]*\}|\.?[\w#.+-]*)?[ ]*$")


class FenceCloserPreprocessor(Preprocessor):
    """Close a fenced code block left open at the end of the document.

    The fenced_code extension ignores an unterminated fence and renders its
    contents as ordinary Markdown; closing it here makes the block run to the
    end of the document instead.
    """

    def run(self, lines: list[str]) -> list[str]:
        open_fence = ""
        for line in lines:
            if open_fence:
                if line.rstrip() == open_fence:
                    open_fence = ""
                continue
            match = FENCE_OPEN_RE.match(line)
            if match:
                open_fence = match.group("fence")
        if open_fence:
            return [*lines, open_fence]
        return lines


class FenceCloserExtension(Extension):
    def extendMarkdown(self, md):
        # fenced_code_block runs at 25; this must see the text first.
        md.preprocessors.register(FenceCloserPreprocessor(md), "fence_closer", 28)
