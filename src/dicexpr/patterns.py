"""
Shorthand rewrite rules.

Dice shorthand is turned into canonical function-call syntax by an ordered
table of regular-expression rules before anything is parsed:

    4d6     => roll(4, 6)
    d20     => roll(1, 20)
    4d6d1   => drop(4, 6, 1)
    10d4es6 => explodingSuccess(10, 4, 6)
    4.5d6h  => hero(4.5, 6)
    #F0A    => 0xFF00AA

Each rule runs exactly once, as a single global substitution, in table order.
The table is never applied to a fixpoint, so a rule's replacement must not be
something any later rule (or the rule itself) would capture again. Order
carries meaning: rules with longer, more specific suffixes come before the
general ones, and the bare NdM rule is last among the die rules that can
collide with it.

Letter codes are matched with character classes ([dD]) rather than by folding
the input, so the case of text outside a match is preserved. Every rule is
anchored with word boundaries or look-arounds so that nothing fires inside a
longer identifier such as food10 or asdfg.
"""
import re
import logging

from dicexpr.errors import RuleAuthoringError
from dicexpr.literals import StringLiteralTransformer

GROUP_REF_RE = re.compile(r"\\g<\w+>|\\\d+")


class Rule(object):
    """
    A single shorthand rule: a pattern, its replacement template, and
    optionally a sample input the rule is meant to rewrite.
    """
    __slots__ = ('pattern', 'template', 'example')

    def __init__(self, pattern, template, example=None):
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        self.pattern = pattern
        self.template = template
        self.example = example

    def __repr__(self):
        return "Rule(%r, %r)" % (self.pattern.pattern, self.template)

    def __str__(self):
        return self.pattern.pattern

    def search(self, text):
        return self.pattern.search(text)

    def apply(self, text):
        return self.pattern.sub(self.template, text)

    def sample_output(self):
        """
        Text this rule produces: its example rewritten, or the template with
        every group reference filled in with 1.
        """
        if self.example is not None:
            return self.apply(self.example)
        return GROUP_REF_RE.sub('1', self.template)


def _rules(*specs):
    return tuple(Rule(*spec) for spec in specs)


DICE_PATTERNS = _rules(
    # Comments.
    (r"//.*", "", "2 + 3 // note"),

    # Color hex strings: #FFF, #FFFFFF or #FFFFFFFF (with alpha).
    (r"(?<![0-9A-Za-z])#([0-9A-Fa-f])([0-9A-Fa-f])([0-9A-Fa-f])"
     r"(?![0-9A-Za-z])",
     r"0x\g<1>\g<1>\g<2>\g<2>\g<3>\g<3>", "#F0A"),
    (r"(?<![0-9A-Za-z])#([0-9A-Fa-f]{6}(?:[0-9A-Fa-f]{2})?)(?![0-9A-Za-z])",
     r"0x\g<1>", "#FF0000"),

    # Drop lowest.
    (r"\b(\d+)[dD](\d+)[dD](\d+)\b", r"drop(\g<1>, \g<2>, \g<3>)", "4d6d1"),
    (r"\b[dD](\d+)[dD](\d+)\b", r"drop(1, \g<1>, \g<2>)", "d6d1"),

    # Drop highest.
    (r"\b(\d+)[dD](\d+)[dD][hH](\d+)\b", r"dropHighest(\g<1>, \g<2>, \g<3>)",
     "4d6dh1"),
    (r"\b[dD](\d+)[dD][hH](\d+)\b", r"dropHighest(1, \g<1>, \g<2>)", "d6dh1"),

    # Keep highest.
    (r"\b(\d+)[dD](\d+)[kK](\d+)\b", r"keep(\g<1>, \g<2>, \g<3>)", "4d6k3"),
    (r"\b[dD](\d+)[kK](\d+)\b", r"keep(1, \g<1>, \g<2>)", "d6k1"),

    # Keep lowest.
    (r"\b(\d+)[dD](\d+)[kK][lL](\d+)\b", r"keepLowest(\g<1>, \g<2>, \g<3>)",
     "4d6kl3"),
    (r"\b[dD](\d+)[kK][lL](\d+)\b", r"keepLowest(1, \g<1>, \g<2>)", "d6kl1"),

    # Re-roll.
    (r"\b(\d+)[dD](\d+)[rR](\d+)\b", r"reroll(\g<1>, \g<2>, \g<3>)", "4d6r2"),
    (r"\b[dD](\d+)[rR](\d+)\b", r"reroll(1, \g<1>, \g<2>)", "d6r2"),

    # Count successes.
    (r"\b(\d+)[dD](\d+)[sS](\d+)\b", r"success(\g<1>, \g<2>, \g<3>)",
     "10d6s4"),
    (r"\b[dD](\d+)[sS](\d+)\b", r"success(1, \g<1>, \g<2>)", "d6s4"),

    # Count successes while exploding.
    (r"\b(\d+)[dD](\d+)[eE][sS](\d+)\b",
     r"explodingSuccess(\g<1>, \g<2>, \g<3>)", "10d4es6"),
    (r"\b[dD](\d+)[eE][sS](\d+)\b", r"explodingSuccess(1, \g<1>, \g<2>)",
     "d4es6"),
    (r"\b(\d+)[eE][sS](\d+)\b", r"explodingSuccess(\g<1>, 6, \g<2>)", "10es9"),

    # Show the maximum while exploding.
    (r"\b(\d+)[dD](\d+)[oO]\b", r"openTest(\g<1>, \g<2>)", "10d4o"),
    (r"\b[dD](\d+)[oO]\b", r"openTest(1, \g<1>)", "d4o"),
    (r"\b(\d+)[oO]\b", r"openTest(\g<1>, 6)", "10o"),

    # Explode.
    (r"\b(\d+)[dD](\d+)[eE]\b", r"explode(\g<1>, \g<2>)", "10d6e"),
    (r"\b[dD](\d+)[eE]\b", r"explode(1, \g<1>)", "d6e"),

    # Hero System normal damage, stun then body.
    (r"\b(\d+[.]\d+)[dD](\d+)[hH]\b", r"hero(\g<1>, \g<2>)", "4.5d6h"),
    (r"\b(\d+)[dD](\d+)[hH]\b", r"hero(\g<1>, \g<2>)", "4d6h"),
    (r"\b[dD](\d+)[hH]\b", r"hero(1, \g<1>)", "d6h"),
    (r"\b(\d+[.]\d+)[dD](\d+)[bB]\b", r"herobody(\g<1>, \g<2>)", "4.5d6b"),
    (r"\b(\d+)[dD](\d+)[bB]\b", r"herobody(\g<1>, \g<2>)", "4d6b"),
    (r"\b[dD](\d+)[bB]\b", r"herobody(1, \g<1>)", "d6b"),

    # Hero System killing damage, stun multiplier from d6-1.
    (r"\b(\d+[.]\d+)[dD](\d+)[hH][kK]([-+]\d+)\b",
     r"herokilling(\g<1>, \g<2>, \g<3>)", "2.5d6hk+1"),
    (r"\b(\d+[.]\d+)[dD](\d+)[hH][kK]\b", r"herokilling(\g<1>, \g<2>, 0)",
     "2.5d6hk"),
    (r"\b(\d+)[dD](\d+)[hH][kK]([-+]\d+)\b",
     r"herokilling(\g<1>, \g<2>, \g<3>)", "2d6hk-1"),
    (r"\b(\d+)[dD](\d+)[hH][kK]\b", r"herokilling(\g<1>, \g<2>, 0)", "2d6hk"),
    (r"\b[dD](\d+)[hH][kK]([-+]\d+)\b", r"herokilling(1, \g<1>, \g<2>)",
     "d6hk+1"),
    (r"\b[dD](\d+)[hH][kK]\b", r"herokilling(1, \g<1>, 0)", "d6hk"),

    # Hero System killing damage, stun multiplier from a half die.
    (r"\b(\d+[.]\d+)[dD](\d+)[hH][kK]2([-+]\d+)\b",
     r"herokilling2(\g<1>, \g<2>, \g<3>)", "2.5d6hk2+1"),
    (r"\b(\d+[.]\d+)[dD](\d+)[hH][kK]2\b", r"herokilling2(\g<1>, \g<2>, 0)",
     "2.5d6hk2"),
    (r"\b(\d+)[dD](\d+)[hH][kK]2([-+]\d+)\b",
     r"herokilling2(\g<1>, \g<2>, \g<3>)", "2d6hk2-1"),
    (r"\b(\d+)[dD](\d+)[hH][kK]2\b", r"herokilling2(\g<1>, \g<2>, 0)",
     "2d6hk2"),
    (r"\b[dD](\d+)[hH][kK]2([-+]\d+)\b", r"herokilling2(1, \g<1>, \g<2>)",
     "d6hk2+1"),
    (r"\b[dD](\d+)[hH][kK]2\b", r"herokilling2(1, \g<1>, 0)", "d6hk2"),

    # Hero System killing damage stun, from the last killing roll.
    (r"\b(\d+)[dD](\d+)[hH][mM]([-+]\d+)\b",
     r"heromultiplier(\g<1>, \g<2>, \g<3>)", "2d6hm+1"),
    (r"\b[dD](\d+)[hH][mM]([-+]\d+)\b", r"heromultiplier(1, \g<1>, \g<2>)",
     "d6hm+1"),
    (r"\b(\d+)[dD](\d+)[hH][mM]\b", r"heromultiplier(\g<1>, \g<2>, 0)",
     "2d6hm"),
    (r"\b[dD](\d+)[hH][mM]\b", r"heromultiplier(1, \g<1>, 0)", "d6hm"),
    (r"\b(\d+)[hH][mM]\b", r"heromultiplier(0, 0, \g<1>)", "5hm"),

    # Plain dice.
    (r"\b(\d+)[dD](\d+)\b", r"roll(\g<1>, \g<2>)", "4d6"),
    (r"\b[dD](\d+)\b", r"roll(1, \g<1>)", "d20"),

    # Fudge dice.
    (r"\b(\d+)[dD][fF]\b", r"fudge(\g<1>)", "4dF"),
    (r"\b[dD][fF]\b", r"fudge(1)", "dF"),

    # Ubiquity dice.
    (r"\b(\d+)[dD][uU]\b", r"ubiquity(\g<1>)", "10dU"),
    (r"\b[dD][uU]\b", r"ubiquity(1)", "dU"),

    # Shadowrun 4 edge (exploding) test.
    (r"\b(\d+)[sS][rR]4[eE][gG](\d+)\b", r"sr4e(\g<1>, \g<2>)", "5sr4eg2"),
    (r"\b(\d+)[sS][rR]4[eE]\b", r"sr4e(\g<1>)", "5sr4e"),

    # Shadowrun 4 normal test.
    (r"\b(\d+)[sS][rR]4[gG](\d+)\b", r"sr4(\g<1>, \g<2>)", "5sr4g2"),
    (r"\b(\d+)[sS][rR]4\b", r"sr4(\g<1>)", "5sr4"),

    # Subtract X with a minimum of Y.
    (r"\b(\d+)[dD](\d+)[sS](\d+)[lL](\d+)\b",
     r"rollSubWithLower(\g<1>, \g<2>, \g<3>, \g<4>)", "3d6s2l1"),
    (r"\b[dD](\d+)[sS](\d+)[lL](\d+)\b",
     r"rollSubWithLower(1, \g<1>, \g<2>, \g<3>)", "d6s2l1"),

    # Add X with a maximum of Y.
    (r"\b(\d+)[dD](\d+)[aA](\d+)[uU](\d+)\b",
     r"rollAddWithUpper(\g<1>, \g<2>, \g<3>, \g<4>)", "3d6a2u15"),
    (r"\b[dD](\d+)[aA](\d+)[uU](\d+)\b",
     r"rollAddWithUpper(1, \g<1>, \g<2>, \g<3>)", "d6a2u7"),

    # Minimum value per die (treat 1s as 2s).
    (r"\b(\d+)[dD](\d+)[lL](\d+)\b", r"rollWithLower(\g<1>, \g<2>, \g<3>)",
     "3d6l2"),
    (r"\b[dD](\d+)[lL](\d+)\b", r"rollWithLower(1, \g<1>, \g<2>)", "d6l2"),

    # Maximum value per die (treat 6s as 5s).
    (r"\b(\d+)[dD](\d+)[uU](\d+)\b", r"rollWithUpper(\g<1>, \g<2>, \g<3>)",
     "3d6u5"),
    (r"\b[dD](\d+)[uU](\d+)\b", r"rollWithUpper(1, \g<1>, \g<2>)", "d6u5"),

    # Dragon Quest: add a modifier, never below 1.
    (r"\b(\d+)[dD](\d+)[qQ]#([+-]?\d+)\b",
     r"rollAddWithLower(\g<1>, \g<2>, \g<3>, 1)", "2d6q#-3"),
    (r"\b[dD](\d+)[qQ]#([+-]?\d+)\b", r"rollAddWithLower(1, \g<1>, \g<2>, 1)",
     "d6q#2"),
    (r"\b(\d+)[dD](\d+)[qQ]\b", r"rollAddWithLower(\g<1>, \g<2>, 0, 1)",
     "2d6q"),
    (r"\b[dD](\d+)[qQ]\b", r"rollAddWithLower(1, \g<1>, 0, 1)", "d6q"),
)


class PatternTable(object):
    """
    An immutable, ordered table of shorthand rules.

    @ivar rules: The rules, in the order they are applied.
    @type rules: C{tuple} of L{Rule}
    """
    literals = StringLiteralTransformer()

    def __init__(self, rules=None, check=True):
        """
        @param rules: Rule objects or (pattern, template[, example]) tuples.
            Defaults to L{DICE_PATTERNS}.
        @param check: Run L{check} before the table is used.

        @raise RuleAuthoringError: If check is enabled and a rule collides.
        """
        if rules is None:
            rules = DICE_PATTERNS
        self.rules = tuple(r if isinstance(r, Rule) else Rule(*r)
                           for r in rules)
        if check:
            self.check()

    def __len__(self):
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)

    def transform(self, raw):
        """
        Rewrite shorthand into canonical syntax. Never fails: anything no rule
        recognizes is passed through untouched.

        @param raw: Expression text as typed.
        @type raw: C{str}

        @rtype: C{str}
        """
        text, literals = self.literals.remove(raw)
        for rule in self.rules:
            text = rule.apply(text)
        canonical = self.literals.restore(text, literals)
        logging.debug("Rewrote %r as %r", raw, canonical)
        return canonical

    def check(self):
        """
        Construction-time self-test of the table's ordering.

        For each rule, its sample output must not be matched by the rule
        itself or by any rule after it. Rules with an example must also turn
        that example, run through the whole table, into exactly what the rule
        alone produces; otherwise an earlier rule is shadowing it.

        @raise RuleAuthoringError: On the first violation found.
        """
        for i, rule in enumerate(self.rules):
            sample = rule.sample_output()
            for other in self.rules[i:]:
                if other.search(sample):
                    raise RuleAuthoringError(
                        "Output %r of rule %s is matched again by rule %s"
                        % (sample, rule, other), rule=rule, other=other)
            if rule.example is None:
                continue
            if sample == rule.example:
                raise RuleAuthoringError(
                    "Rule %s does not match its example %r"
                    % (rule, rule.example), rule=rule)
            text = rule.example
            for other in self.rules:
                rewritten = other.apply(text)
                if rewritten != text and other is not rule:
                    raise RuleAuthoringError(
                        "Rule %s rewrites %r, the example of rule %s"
                        % (other, rule.example, rule), rule=rule, other=other)
                text = rewritten
        logging.debug("Pattern table of %d rules passed self-check",
                      len(self.rules))
