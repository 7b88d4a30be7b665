"""
Keeps string literals out of reach of the shorthand rewrite rules.

Quoted text is swapped for opaque placeholders before the rewrite pass and put
back afterwards, so 'd10' stays the three characters d, 1, 0.

A literal ends at the end of its line. An apostrophe in a // comment must not
pair with a quote on a later line, or removing the comment would take the
lines between with it.
"""
import re

PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")
# Text that already looks like a placeholder is stashed like a literal, so
# every placeholder left in the text refers to an entry that exists.
LITERAL_RE = re.compile(r"'(?:[^'\\\n]|\\.)*'"
                        + '|' + r'"(?:[^"\\\n]|\\.)*"'
                        + '|' + PLACEHOLDER_RE.pattern)


class StringLiteralTransformer(object):
    """
    Removes and restores quoted string literals.

    Placeholders are a NUL-delimited index. NUL is not a word character, so no
    rewrite rule can anchor on or inside a placeholder.
    """

    def remove(self, text):
        """
        @return: The protected text and the literals it stood for.
        @rtype: C{tuple} of (C{str}, C{list})
        """
        literals = []

        def _stash(match):
            literals.append(match.group(0))
            return "\x00%d\x00" % (len(literals) - 1)

        return LITERAL_RE.sub(_stash, text), literals

    def restore(self, text, literals):
        if not literals:
            return text
        return PLACEHOLDER_RE.sub(lambda m: literals[int(m.group(1))], text)
