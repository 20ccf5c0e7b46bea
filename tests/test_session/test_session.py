"""
Tests for the roll policy, dice sessions, roll history and payloads.

Run from project root: python -m pytest tests/ -v
"""

import json
import sys
import unittest
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from shared.enums import MessageType, PolicyResult, RollMode
from shared.protocol import (
    DiceRolledMessage, ErrorMessage, Message, RollDiceRequest, parse_message
)
from tabletop.dice import (
    Dice, DiceSession, FormatError, LockedRandomSource, PolicyError, RangeError,
    RollHistory, RollPolicy, RollRecord, RollRequest, parse_formula
)


class ScriptedSource:
    """Returns pre-chosen die faces, in order."""

    def __init__(self, faces):
        self._faces = list(faces)

    def next_int(self, bound):
        return self._faces.pop(0) - 1


def make_session(faces=None, game_id="game-1", policy=None, history=None) -> DiceSession:
    source = ScriptedSource(faces) if faces is not None else LockedRandomSource(seed=42)
    return DiceSession(
        game_id,
        policy=policy or RollPolicy(),
        dice=Dice(source),
        history=history if history is not None else RollHistory(),
    )


def make_record(user_id="u1", username="Alice", formula="1d20", results=(10,),
                total=None, game_id="game-1", **kwargs) -> RollRecord:
    parsed = parse_formula(formula)
    return RollRecord(
        game_id=game_id,
        user_id=user_id,
        username=username,
        formula=parsed.formula,
        dice_type=parsed.dice_type,
        count=parsed.count,
        modifier=parsed.modifier,
        results=results,
        total=total if total is not None else sum(results) + parsed.modifier,
        **kwargs
    )


class RollPolicyTestCase(unittest.TestCase):

    def setUp(self):
        self.policy = RollPolicy()

    def test_standard_formula_passes(self):
        validation = self.policy.validate(parse_formula("3d6-2"))
        self.assertTrue(validation.valid)
        self.assertEqual(validation.result, PolicyResult.SUCCESS)

    def test_too_many_dice(self):
        validation = self.policy.validate(parse_formula("101d6"))
        self.assertFalse(validation.valid)
        self.assertEqual(validation.result, PolicyResult.TOO_MANY_DICE)
        self.assertTrue(self.policy.validate(parse_formula("100d6")).valid)

    def test_dice_type_not_allowed(self):
        validation = self.policy.validate(parse_formula("1d7"))
        self.assertEqual(validation.result, PolicyResult.DICE_TYPE_NOT_ALLOWED)
        self.assertIn("d20", validation.message)

    def test_any_dice_type(self):
        policy = RollPolicy(allowed_dice_types=None)
        self.assertTrue(policy.validate(parse_formula("3d7")).valid)

    def test_modifier_bound(self):
        self.assertTrue(self.policy.validate(parse_formula("1d20+999")).valid)
        self.assertTrue(self.policy.validate(parse_formula("1d20-999")).valid)
        validation = self.policy.validate(parse_formula("1d20-1000"))
        self.assertEqual(validation.result, PolicyResult.MODIFIER_TOO_LARGE)

    def test_advantage_needs_single_d20(self):
        for text in ["1d20", "d20+5", "1d20-2"]:
            with self.subTest(text=text):
                for mode in (RollMode.ADVANTAGE, RollMode.DISADVANTAGE):
                    self.assertTrue(self.policy.validate(parse_formula(text), mode).valid)

        for text in ["2d20", "1d12", "3d6+1"]:
            with self.subTest(text=text):
                validation = self.policy.validate(parse_formula(text), RollMode.ADVANTAGE)
                self.assertFalse(validation.valid)
                self.assertEqual(validation.result, PolicyResult.MODE_REQUIRES_SINGLE_D20)

    def test_enforce_raises_with_validation(self):
        with self.assertRaises(PolicyError) as ctx:
            self.policy.enforce(parse_formula("2d20"), RollMode.DISADVANTAGE)
        self.assertEqual(ctx.exception.validation.result, PolicyResult.MODE_REQUIRES_SINGLE_D20)

    def test_policy_accepts_mode_strings(self):
        self.assertTrue(self.policy.validate(parse_formula("1d20+1"), "DISADVANTAGE").valid)
        with self.assertRaises(PolicyError):
            self.policy.enforce(parse_formula("1d6"), "ADVANTAGE")

    def test_single_d20_formula(self):
        self.assertTrue(parse_formula("d20-2").is_single_d20)
        self.assertFalse(parse_formula("2d20").is_single_d20)
        self.assertFalse(parse_formula("1d12").is_single_d20)

    def test_from_config_uses_defaults(self):
        policy = RollPolicy.from_config()
        self.assertGreaterEqual(policy.max_count, 1)
        self.assertGreaterEqual(policy.max_modifier, 0)


class DiceSessionTestCase(unittest.TestCase):

    def test_normal_roll(self):
        session = make_session([4, 6, 2])
        record = session.roll("u1", "Alice", RollRequest("3d6-2", reason="Damage"))

        self.assertEqual(record.game_id, "game-1")
        self.assertEqual(record.formula, "3d6-2")
        self.assertEqual((record.count, record.dice_type, record.modifier), (3, 6, -2))
        self.assertEqual(record.results, (4, 6, 2))
        self.assertEqual(record.total, 10)
        self.assertEqual(record.reason, "Damage")
        self.assertEqual(record.mode, RollMode.NORMAL)
        self.assertIsNone(record.kept)

    def test_advantage_applies_modifier_once(self):
        session = make_session([15, 18])
        record = session.roll("u1", "Alice", RollRequest("1d20+3", mode=RollMode.ADVANTAGE))

        self.assertEqual(record.results, (15, 18))
        self.assertEqual(record.kept, 18)
        self.assertEqual(record.discarded, 15)
        self.assertEqual(record.total, 21)
        self.assertEqual(record.reason, "Advantage: 1d20+3")

    def test_disadvantage(self):
        session = make_session([15, 18])
        record = session.roll(
            "u1", "Alice", RollRequest("d20-1", mode=RollMode.DISADVANTAGE, reason="Perception")
        )
        self.assertEqual(record.kept, 15)
        self.assertEqual(record.total, 14)
        self.assertEqual(record.reason, "Perception")

    def test_default_reason_for_disadvantage(self):
        record = make_session([3, 4]).roll("u1", "A", RollRequest("1d20", mode=RollMode.DISADVANTAGE))
        self.assertEqual(record.reason, "Disadvantage: 1d20")

    def test_advantage_refused_for_other_formulas(self):
        session = make_session([])
        with self.assertRaises(PolicyError):
            session.roll("u1", "Alice", RollRequest("2d20", mode=RollMode.ADVANTAGE))
        self.assertEqual(len(session.history), 0)

    def test_parser_errors_propagate(self):
        session = make_session([])
        with self.assertRaises(FormatError):
            session.roll("u1", "Alice", RollRequest("1d6++2"))
        with self.assertRaises(RangeError):
            session.roll("u1", "Alice", RollRequest("0d6"))

    def test_rolls_are_recorded(self):
        session = make_session()
        first = session.roll("u1", "Alice", RollRequest("1d20"))
        second = session.roll("u2", "Bob", RollRequest("2d6"))
        self.assertEqual(len(session.history), 2)
        self.assertEqual(session.history.recent("game-1"), [second, first])
        self.assertNotEqual(first.id, second.id)

    def test_roll_logs(self):
        session = make_session([7])
        with self.assertLogs("tabletop.dice.session", level="INFO") as logs:
            session.roll("u1", "Alice", RollRequest("1d20+2"))
        self.assertIn("Roll 1d20+2 = 9 by Alice", logs.output[0])

    def test_record_is_immutable(self):
        record = make_session([5]).roll("u1", "Alice", RollRequest("1d20"))
        with self.assertRaises(AttributeError):
            record.total = 99

    def test_mode_given_as_string(self):
        session = make_session([15, 18])
        record = session.roll("u1", "Alice", RollRequest("1d20+3", mode="ADVANTAGE"))

        self.assertIs(record.mode, RollMode.ADVANTAGE)
        self.assertEqual(record.total, 21)
        self.assertEqual(record.reason, "Advantage: 1d20+3")
        self.assertEqual(record.to_dict()["mode"], "ADVANTAGE")

    def test_unknown_mode_rejected(self):
        with self.assertRaises(ValueError):
            RollRequest("1d20", mode="SIDEWAYS")

    def test_role_copied_onto_record(self):
        session = make_session([12, 9, 4])
        record = session.roll("u1", "Alice", RollRequest("1d20"), role="dm")
        self.assertEqual(record.role, "dm")
        self.assertEqual(record.to_dict()["role"], "dm")

        record = session.roll("u2", "Bob", RollRequest("1d20", mode=RollMode.ADVANTAGE), role="player")
        self.assertEqual(record.role, "player")


class RollRecordTestCase(unittest.TestCase):

    def test_to_dict_wire_keys(self):
        record = make_record(formula="3d6-2", results=(4, 6, 2), reason="Damage")
        data = record.to_dict()
        self.assertEqual(data["diceType"], 6)
        self.assertEqual(data["count"], 3)
        self.assertEqual(data["modifier"], -2)
        self.assertEqual(data["results"], [4, 6, 2])
        self.assertEqual(data["total"], 10)
        self.assertEqual(data["userId"], "u1")
        self.assertEqual(data["gameId"], "game-1")
        self.assertFalse(data["advantage"])
        self.assertFalse(data["disadvantage"])
        self.assertEqual(RollRecord.from_dict(data), record)

    def test_from_dict_restores_mode(self):
        record = make_record(results=(15, 18), total=21, formula="1d20+3",
                             mode=RollMode.ADVANTAGE, kept=18, discarded=15)
        data = json.loads(json.dumps(record.to_dict()))
        self.assertTrue(data["advantage"])
        restored = RollRecord.from_dict(data)
        self.assertEqual(restored.mode, RollMode.ADVANTAGE)
        self.assertEqual(restored.kept, 18)
        self.assertEqual(restored, record)

    def test_role_roundtrip(self):
        record = make_record(role="dm", mode="DISADVANTAGE", results=(4, 9), kept=4, discarded=9)
        self.assertIs(record.mode, RollMode.DISADVANTAGE)
        restored = RollRecord.from_dict(record.to_dict())
        self.assertEqual(restored.role, "dm")
        self.assertEqual(restored, record)

        data = record.to_dict()
        del data["role"]
        self.assertIsNone(RollRecord.from_dict(data).role)

    def test_criticals(self):
        self.assertTrue(make_record(results=(20,)).is_critical_success)
        self.assertTrue(make_record(results=(1,)).is_critical_failure)
        self.assertFalse(make_record(results=(19,)).is_critical_success)
        # Only single d20 rolls can be critical
        self.assertFalse(make_record(formula="2d20", results=(20, 5)).is_critical_success)
        self.assertFalse(make_record(formula="1d100", results=(1,)).is_critical_failure)

    def test_criticals_follow_kept_die(self):
        adv = make_record(results=(1, 20), mode=RollMode.ADVANTAGE, kept=20, discarded=1)
        dis = make_record(results=(1, 20), mode=RollMode.DISADVANTAGE, kept=1, discarded=20)
        self.assertTrue(adv.is_critical_success)
        self.assertFalse(adv.is_critical_failure)
        self.assertTrue(dis.is_critical_failure)


class RollHistoryTestCase(unittest.TestCase):

    def test_empty_stats(self):
        history = RollHistory()
        self.assertEqual(history.player_stats("game-1", "u1").to_dict(), {
            "totalRolls": 0,
            "average": 0,
            "highest": 0,
            "lowest": 0,
            "criticalSuccesses": 0,
            "criticalFailures": 0,
            "distribution": {},
            "recentRolls": [],
        })
        self.assertEqual(history.game_stats("game-1").to_dict(), {
            "totalRolls": 0,
            "playerStats": {},
            "mostActivePlayer": None,
            "highestRoll": None,
            "lowestRoll": None,
        })

    def test_player_stats(self):
        history = RollHistory()
        history.append(make_record(results=(20,)))
        history.append(make_record(results=(1,)))
        history.append(make_record(formula="3d6+1", results=(2, 3, 4)))
        history.append(make_record(user_id="u2", username="Bob", results=(12,)))
        history.append(make_record(game_id="other", results=(20,)))

        stats = history.player_stats("game-1", "u1")
        self.assertEqual(stats.total_rolls, 3)
        self.assertEqual(stats.highest, 20)
        self.assertEqual(stats.lowest, 1)
        self.assertEqual(stats.average, round((20 + 1 + 10) / 3, 2))
        self.assertEqual(stats.critical_successes, 1)
        self.assertEqual(stats.critical_failures, 1)
        self.assertEqual(stats.distribution, {"d20": 2, "d6": 1})
        self.assertEqual([r["formula"] for r in stats.recent_rolls], ["3d6+1", "1d20", "1d20"])

    def test_recent_rolls_capped_at_ten(self):
        history = RollHistory()
        for value in range(1, 16):
            history.append(make_record(results=(value,)))
        recent = history.player_stats("game-1", "u1").recent_rolls
        self.assertEqual([r["total"] for r in recent], list(range(15, 5, -1)))

    def test_game_stats(self):
        history = RollHistory()
        history.append(make_record(results=(5,)))
        history.append(make_record(user_id="u2", username="Bob", results=(18,)))
        history.append(make_record(user_id="u2", username="Bob", results=(3,)))
        history.append(make_record(results=(18,)))

        stats = history.game_stats("game-1")
        self.assertEqual(stats.total_rolls, 4)
        self.assertEqual(stats.player_stats, {
            "u1": {"username": "Alice", "count": 2, "total": 23},
            "u2": {"username": "Bob", "count": 2, "total": 21},
        })
        # Most-active and highest ties go to the earliest entry
        self.assertEqual(stats.most_active_player, {"username": "Alice", "count": 2})
        self.assertEqual(stats.highest_roll, {"username": "Bob", "formula": "1d20", "total": 18})
        self.assertEqual(stats.lowest_roll, {"username": "Bob", "formula": "1d20", "total": 3})

    def test_lowest_roll_tie_keeps_latest(self):
        history = RollHistory()
        history.append(make_record(results=(3,)))
        history.append(make_record(user_id="u2", username="Bob", results=(3,)))
        history.append(make_record(user_id="u3", username="Carol", results=(20,)))

        stats = history.game_stats("game-1")
        self.assertEqual(stats.lowest_roll, {"username": "Bob", "formula": "1d20", "total": 3})
        self.assertEqual(stats.highest_roll, {"username": "Carol", "formula": "1d20", "total": 20})

    def test_recent_limit_and_order(self):
        history = RollHistory()
        records = [make_record(results=(v,)) for v in range(1, 61)]
        for record in records:
            history.append(record)
        recent = history.recent("game-1")
        self.assertEqual(len(recent), 50)
        self.assertEqual(recent[0], records[-1])
        self.assertEqual(history.recent("game-1", limit=2), [records[-1], records[-2]])
        self.assertEqual(history.recent("game-1", limit=0), [])

    def test_max_size_evicts_oldest(self):
        history = RollHistory(max_size=3)
        records = [make_record(results=(v,)) for v in range(1, 6)]
        for record in records:
            history.append(record)
        self.assertEqual(len(history), 3)
        self.assertEqual(history.recent("game-1"), records[:1:-1])

    def test_clear(self):
        history = RollHistory()
        history.append(make_record())
        history.clear()
        self.assertEqual(len(history), 0)


class PayloadTestCase(unittest.TestCase):

    def test_roll_request(self):
        request = RollDiceRequest.create("game-1", dice_type=6, count=3, modifier=-2, reason="Damage")
        self.assertEqual(request.type, MessageType.ROLL_DICE)
        self.assertEqual(request.data, {
            "gameId": "game-1", "diceType": 6, "count": 3, "modifier": -2, "reason": "Damage"
        })
        self.assertEqual(request.formula_text, "3d6-2")
        self.assertEqual(parse_formula(request.formula_text).formula, "3d6-2")

    def test_dice_rolled_message(self):
        record = make_session([4, 6, 2]).roll("u1", "Alice", RollRequest("3d6-2"))
        message = DiceRolledMessage.create("game-1", record)
        parsed = parse_message(message.to_json())

        self.assertIsInstance(parsed, DiceRolledMessage)
        self.assertEqual(parsed.data["gameId"], "game-1")
        self.assertEqual(RollRecord.from_dict(parsed.data["roll"]), record)

    def test_error_message(self):
        error = ErrorMessage.create("Invalid formula", "FORMAT_ERROR", request_id="r1")
        parsed = parse_message(error.to_json())
        self.assertIsInstance(parsed, ErrorMessage)
        self.assertEqual(parsed.data, {"message": "Invalid formula", "code": "FORMAT_ERROR"})
        self.assertEqual(parsed.request_id, "r1")

    def test_message_dict_roundtrip(self):
        message = Message(type=MessageType.ROLL_DICE, data={"diceType": 20}, request_id="x")
        self.assertEqual(Message.from_dict(message.to_dict()), message)

    def test_unknown_type_rejected(self):
        with self.assertRaises(ValueError):
            parse_message(json.dumps({"type": "NOPE"}))


if __name__ == "__main__":
    unittest.main()
