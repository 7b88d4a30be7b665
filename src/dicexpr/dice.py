"""
Dice functions: the catalog entries shorthand is rewritten into.

    roll(N, S)                 -- Sum of N S-sided dice.
    drop(N, S, K)              -- Drop the lowest K dice, sum the rest.
    dropHighest(N, S, K)       -- Drop the highest K dice, sum the rest.
    keep(N, S, K)              -- Keep the highest K dice.
    keepLowest(N, S, K)        -- Keep the lowest K dice.
    reroll(N, S, L)            -- Re-roll any die below L until it is not.
    success(N, S, T)           -- Count dice of T or more.
    explodingSuccess(N, S, T)  -- Dice explode on S; report successes of T+.
    openTest(N, S)             -- Dice explode on S; report the maximum.
    explode(N, S)              -- Dice explode on S; sum them.
    hero(N, S)                 -- Hero System normal damage, yields stun.
    herobody(N, S)             -- Body of the last matching hero() roll.
    herokilling(N, S, M)       -- Hero System killing damage, yields body.
    herokilling2(N, S, M)      -- As herokilling, half-die stun multiplier.
    heromultiplier(N, S, M)    -- Stun of the last killing roll.
    fudge(N)                   -- Fudge dice: -1, 0 or +1 each.
    ubiquity(N)                -- Ubiquity dice: 0 or 1 each.
    sr4(N[, G])                -- Shadowrun 4 test with G gremlins.
    sr4e(N[, G])               -- Shadowrun 4 edge test; sixes explode.
    rollWithLower(N, S, L)     -- Each die counts at least L.
    rollWithUpper(N, S, U)     -- Each die counts at most U.
    rollSubWithLower(N, S, X, L)  -- Total minus X, at least L.
    rollAddWithUpper(N, S, X, U)  -- Total plus X, at most U.
    rollAddWithLower(N, S, X, L)  -- Total plus X, at least L.

An exploding die is re-rolled while it shows its highest face and every roll is
added to that die's total. Hero System half dice (the .5 in 4.5d6) count
ceil(d6 / 2) towards totals.

Every function draws only from the roll context it is given and records what
it rolled there, so the roll history reads in the order dice hit the table.
"""
from decimal import Decimal

from dicexpr.config import config
from dicexpr.errors import EvaluationError
from dicexpr.engine import format_value
from dicexpr.functions import DiceFunction, NUMBER, INTEGER, STRING

FUDGE_FACES = (-1, 0, 1)
UBIQUITY_FACES = (0, 1)


def max_dice():
    return config['dice'].getint('max dice')


class DiceRoll(DiceFunction):
    """
    Base for functions that roll a number of identical dice.
    """
    min_args = max_args = 2
    arg_kinds = (INTEGER,)

    def check_dice(self, times, sides=None):
        if times < 0:
            raise EvaluationError("Cannot roll %d dice" % times)
        limit = max_dice()
        if times > limit:
            raise EvaluationError("Cannot roll more than %d dice at once"
                                  % limit)
        if sides is not None and sides < 1:
            raise EvaluationError("Dice need at least one side, not %d"
                                  % sides)

    def roll_dice(self, context, times, sides):
        self.check_dice(times, sides)
        return [context.randint(sides) for _ in range(times)]

    def explode_die(self, context, sides):
        if sides < 2:
            raise EvaluationError("A d%d would explode forever" % sides)
        total = roll = context.randint(sides)
        while roll == sides:
            roll = context.randint(sides)
            total += roll
        return total

    def explode_dice(self, context, times, sides):
        self.check_dice(times, sides)
        return [self.explode_die(context, sides) for _ in range(times)]

    def record(self, context, args, dice, desc=None):
        if desc is None:
            desc = "%s(%s) = [%s]" % (self.name,
                                      ', '.join(str(a) for a in args),
                                      ', '.join(map(str, dice)))
        return context.record(self.name, args, dice, desc)


class Roll(DiceRoll):
    name = 'roll'

    def evaluate(self, context, times, sides):
        times, sides = int(times), int(sides)
        dice = self.roll_dice(context, times, sides)
        self.record(context, (times, sides), dice)
        return Decimal(sum(dice))


class Selection(DiceRoll):
    """
    Roll, then count only some of the dice.
    """
    min_args = max_args = 3

    def select(self, dice, count):
        raise NotImplementedError()

    def evaluate(self, context, times, sides, count):
        times, sides, count = int(times), int(sides), int(count)
        if count < 0 or count > times:
            raise EvaluationError("%s() cannot select %d of %d dice"
                                  % (self.name, count, times))
        dice = self.roll_dice(context, times, sides)
        self.record(context, (times, sides, count), dice)
        return Decimal(sum(self.select(sorted(dice), count)))


class Drop(Selection):
    name = 'drop'

    def select(self, dice, count):
        return dice[count:]


class DropHighest(Selection):
    name = 'dropHighest'

    def select(self, dice, count):
        return dice[:len(dice) - count]


class Keep(Selection):
    name = 'keep'

    def select(self, dice, count):
        return dice[len(dice) - count:]


class KeepLowest(Selection):
    name = 'keepLowest'

    def select(self, dice, count):
        return dice[:count]


class Reroll(DiceRoll):
    name = 'reroll'
    min_args = max_args = 3

    def evaluate(self, context, times, sides, lowest):
        times, sides, lowest = int(times), int(sides), int(lowest)
        if lowest > sides:
            raise EvaluationError("Every d%d is below %d" % (sides, lowest))
        dice = self.roll_dice(context, times, sides)
        for i, roll in enumerate(dice):
            while roll < lowest:
                roll = context.randint(sides)
            dice[i] = roll
        self.record(context, (times, sides, lowest), dice)
        return Decimal(sum(dice))


class Success(DiceRoll):
    name = 'success'
    min_args = max_args = 3

    def evaluate(self, context, times, sides, target):
        times, sides, target = int(times), int(sides), int(target)
        dice = self.roll_dice(context, times, sides)
        self.record(context, (times, sides, target), dice)
        return Decimal(len([d for d in dice if d >= target]))


def _dice_report(dice, label, value):
    return "Dice: %s, %s: %d" % (', '.join(map(str, dice)), label, value)


class ExplodingSuccess(DiceRoll):
    name = 'explodingSuccess'
    min_args = max_args = 3
    returns = STRING

    def evaluate(self, context, times, sides, target):
        times, sides, target = int(times), int(sides), int(target)
        dice = self.explode_dice(context, times, sides)
        successes = len([d for d in dice if d >= target])
        report = _dice_report(dice, 'Successes', successes)
        self.record(context, (times, sides, target), dice, report)
        return report


class OpenTest(DiceRoll):
    name = 'openTest'
    returns = STRING

    def evaluate(self, context, times, sides):
        times, sides = int(times), int(sides)
        dice = self.explode_dice(context, times, sides)
        report = _dice_report(dice, 'Maximum', max(dice) if dice else 0)
        self.record(context, (times, sides), dice, report)
        return report


class Explode(DiceRoll):
    name = 'explode'

    def evaluate(self, context, times, sides):
        times, sides = int(times), int(sides)
        dice = self.explode_dice(context, times, sides)
        self.record(context, (times, sides), dice)
        return Decimal(sum(dice))


class HeroState(object):
    """
    Values from the most recent Hero System roll, kept in the parser's
    variables under names an expression cannot spell so a later evaluation
    can read them back.
    """

    def __init__(self, variables, prefix):
        self.variables = variables
        self.prefix = prefix

    def _name(self, key):
        return '%s-%s' % (self.prefix, key)

    def remember(self, **values):
        for key, value in values.items():
            self.variables.set(self._name(key), value)

    def recall(self, key, default=None):
        name = self._name(key)
        if name in self.variables:
            return self.variables.get(name)
        return default

    def matches(self, times, sides):
        return (self.recall('times') == times
                and self.recall('sides') == sides)


class HeroRoll(DiceRoll):
    """
    Hero System dice. The dice count may carry a half die (4.5d6).
    """
    arg_kinds = (NUMBER, INTEGER)
    state_prefix = '#hero'

    def apply(self, env, args):
        state = HeroState(env.variables, self.state_prefix)
        return self.evaluate(env.context, state, *args)

    def split(self, times):
        if times < 0:
            raise EvaluationError("Cannot roll %s dice" % times)
        whole = int(times)
        return whole, times != whole

    def roll_hero(self, context, times, sides):
        """
        @return: Whole dice, and the raw half die or None.
        """
        whole, half = self.split(times)
        dice = self.roll_dice(context, whole, sides)
        half_die = context.randint(sides) if half else None
        return dice, half_die

    def half_value(self, half_die, sides):
        return (half_die + 1) // 2

    def dice_text(self, dice, half_die):
        parts = [str(d) for d in dice]
        if half_die is not None:
            parts.append('%s/2' % half_die)
        return ', '.join(parts)

    def rolled(self, dice, half_die):
        return dice + ([half_die] if half_die is not None else [])


class Hero(HeroRoll):
    name = 'hero'

    def body(self, dice, half_die, sides):
        body = 0
        for d in dice:
            if d == sides:
                body += 2
            elif d > 1:
                body += 1
        if half_die is not None and half_die > sides // 2:
            body += 1
        return body

    def roll_stun_body(self, context, state, times, sides):
        sides = int(sides)
        dice, half_die = self.roll_hero(context, times, sides)
        stun = sum(dice)
        if half_die is not None:
            stun += self.half_value(half_die, sides)
        body = self.body(dice, half_die, sides)
        state.remember(times=times, sides=sides, stun=stun, body=body)
        desc = "hero(%s, %d) = [%s] stun %d body %d" % (
            format_value(times), sides, self.dice_text(dice, half_die),
            stun, body)
        self.record(context, (format_value(times), sides),
                    self.rolled(dice, half_die), desc)
        return stun, body

    def evaluate(self, context, state, times, sides):
        stun, body = self.roll_stun_body(context, state, times, sides)
        return Decimal(stun)


class HeroBody(Hero):
    name = 'herobody'

    def evaluate(self, context, state, times, sides):
        if state.matches(times, sides):
            return state.recall('body')
        stun, body = self.roll_stun_body(context, state, times, sides)
        return Decimal(body)


class HeroKilling(HeroRoll):
    """
    Killing damage: body is the dice total, stun is body times a multiplier
    rolled on 1d6-1 (never below 1) plus any modifier.
    """
    name = 'herokilling'
    min_args = max_args = 3
    arg_kinds = (NUMBER, INTEGER, INTEGER)
    state_prefix = '#herokilling'

    def roll_multiplier(self, context):
        return max(1, context.randint(6) - 1)

    def roll_killing(self, context, state, times, sides, modifier):
        sides, modifier = int(sides), int(modifier)
        dice, half_die = self.roll_hero(context, times, sides)
        body = sum(dice)
        if half_die is not None:
            body += self.half_value(half_die, sides)
        multiplier = max(1, self.roll_multiplier(context) + modifier)
        state.remember(times=times, sides=sides, body=body,
                       multiplier=multiplier)
        desc = "%s(%s, %d, %d) = [%s] body %d stun x%d" % (
            self.name, format_value(times), sides, modifier,
            self.dice_text(dice, half_die), body, multiplier)
        self.record(context, (format_value(times), sides, modifier),
                    self.rolled(dice, half_die), desc)
        return body

    def evaluate(self, context, state, times, sides, modifier):
        return Decimal(self.roll_killing(context, state, times, sides,
                                         modifier))


class HeroKilling2(HeroKilling):
    """
    Killing damage with the stun multiplier rolled on a half die.
    """
    name = 'herokilling2'

    def roll_multiplier(self, context):
        return self.half_value(context.randint(6), 6)


class HeroMultiplier(HeroKilling):
    """
    Stun from the most recent killing roll: body times (multiplier +
    modifier), never less than body. Zero dice means whatever was rolled
    last; otherwise a fresh killing roll is made unless the last one matches.
    """
    name = 'heromultiplier'

    def evaluate(self, context, state, times, sides, modifier):
        if times != 0 and not state.matches(times, sides):
            self.roll_killing(context, state, times, sides, 0)
        body = state.recall('body')
        multiplier = state.recall('multiplier')
        if body is None or multiplier is None:
            raise EvaluationError("No killing damage has been rolled")
        return body * max(1, multiplier + int(modifier))


class Fudge(DiceRoll):
    name = 'fudge'
    min_args = max_args = 1

    def evaluate(self, context, times):
        times = int(times)
        self.check_dice(times)
        dice = [context.choice(FUDGE_FACES) for _ in range(times)]
        self.record(context, (times,), dice)
        return Decimal(sum(dice))


class Ubiquity(DiceRoll):
    name = 'ubiquity'
    min_args = max_args = 1

    def evaluate(self, context, times):
        times = int(times)
        self.check_dice(times)
        dice = [context.choice(UBIQUITY_FACES) for _ in range(times)]
        self.record(context, (times,), dice)
        return Decimal(sum(dice))


class ShadowRun4(DiceRoll):
    """
    Shadowrun 4 test: hits on 5 or 6. A glitch happens when ones plus
    gremlins are more than half the pool; a glitch with no hits is critical.
    """
    name = 'sr4'
    min_args = 1
    max_args = 2
    returns = STRING
    explode = False

    def evaluate(self, context, times, gremlins=Decimal(0)):
        times, gremlins = int(times), int(gremlins)
        self.check_dice(times)
        dice = []
        for _ in range(times):
            roll = context.randint(6)
            dice.append(roll)
            while self.explode and roll == 6:
                roll = context.randint(6)
                dice.append(roll)
        hits = len([d for d in dice if d >= 5])
        ones = len([d for d in dice if d == 1])
        glitch = ''
        if (ones + gremlins) * 2 > times:
            glitch = ' *Critical Glitch*' if hits == 0 else ' *Glitch*'
        report = "Hits: %d Ones: %d%s  Results: %s" % (
            hits, ones, glitch, ''.join('%d ' % d for d in dice))
        self.record(context, (times, gremlins), dice, report)
        return report


class ShadowRun4Edge(ShadowRun4):
    name = 'sr4e'
    explode = True


class RollWithLower(DiceRoll):
    name = 'rollWithLower'
    min_args = max_args = 3

    def bound(self, roll, limit):
        return max(roll, limit)

    def evaluate(self, context, times, sides, limit):
        times, sides, limit = int(times), int(sides), int(limit)
        dice = [self.bound(d, limit)
                for d in self.roll_dice(context, times, sides)]
        self.record(context, (times, sides, limit), dice)
        return Decimal(sum(dice))


class RollWithUpper(RollWithLower):
    name = 'rollWithUpper'

    def bound(self, roll, limit):
        return min(roll, limit)


class RollAddWithLower(DiceRoll):
    """
    Total of the dice plus a modifier, held to a bound.
    """
    name = 'rollAddWithLower'
    min_args = max_args = 4
    sign = 1

    def bound(self, total, limit):
        return max(total, limit)

    def evaluate(self, context, times, sides, modifier, limit):
        times, sides = int(times), int(sides)
        modifier, limit = int(modifier), int(limit)
        dice = self.roll_dice(context, times, sides)
        self.record(context, (times, sides, modifier, limit), dice)
        return Decimal(self.bound(sum(dice) + self.sign * modifier, limit))


class RollSubWithLower(RollAddWithLower):
    name = 'rollSubWithLower'
    sign = -1


class RollAddWithUpper(RollAddWithLower):
    name = 'rollAddWithUpper'

    def bound(self, total, limit):
        return min(total, limit)


DICE_FUNCTIONS = (
    Roll, Drop, DropHighest, Keep, KeepLowest, Reroll, Success,
    ExplodingSuccess, OpenTest, Explode, Hero, HeroBody, HeroKilling,
    HeroKilling2, HeroMultiplier, Fudge, Ubiquity, ShadowRun4, ShadowRun4Edge,
    RollWithLower, RollWithUpper, RollSubWithLower, RollAddWithUpper,
    RollAddWithLower,
)
