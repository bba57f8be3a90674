"""
Tests for expiry expression resolver, dood!
"""

import datetime

import pytest
from dateutil.relativedelta import relativedelta

from lib.varcache.exceptions import InvalidExpiryError
from lib.varcache.expiry import parseRelativeExpiry, resolveExpiry

NOW = 1_700_000_000


class TestResolveExpiryNumbers:
    """Integer expiry values, dood!"""

    @pytest.mark.parametrize("expiry", [None, 0, -1, -3600, 0.0, "0", "-5"])
    def testNeverExpires(self, expiry):
        assert resolveExpiry(expiry, now=NOW) == 0

    def testSmallIntegerIsOffset(self):
        assert resolveExpiry(3600, now=NOW) == NOW + 3600

    def testLargeIntegerIsAbsolute(self):
        assert resolveExpiry(NOW + 10, now=NOW) == NOW + 10
        assert resolveExpiry(NOW, now=NOW) == NOW

    def testOffsetLargerThanNowIsMisreadAsAbsolute(self):
        """Known ambiguity: huge offsets are taken as timestamps"""
        assert resolveExpiry(NOW + 1, now=NOW) == NOW + 1

    def testNumericString(self):
        assert resolveExpiry("60", now=NOW) == NOW + 60
        assert resolveExpiry(" 60 ", now=NOW) == NOW + 60

    def testFloatIsTruncated(self):
        assert resolveExpiry(59.9, now=NOW) == NOW + 59

    @pytest.mark.parametrize("expiry", [True, False])
    def testBoolIsRejected(self, expiry):
        with pytest.raises(InvalidExpiryError):
            resolveExpiry(expiry, now=NOW)

    def testUnsupportedType(self):
        with pytest.raises(InvalidExpiryError):
            resolveExpiry([60], now=NOW)

    def testDefaultsToCurrentTime(self):
        before = int(datetime.datetime.now().timestamp())
        resolved = resolveExpiry(60)
        assert before + 60 <= resolved <= before + 62


class TestResolveExpiryStrings:
    """String expiry values, dood!"""

    @pytest.mark.parametrize("expiry", ["never", "NEVER", " Never ", ""])
    def testNever(self, expiry):
        assert resolveExpiry(expiry, now=NOW) == 0

    @pytest.mark.parametrize(
        "expiry, seconds",
        [
            ("1 second", 1),
            ("30 secs", 30),
            ("5 minutes", 300),
            ("1hour", 3600),
            ("2 hours", 7200),
            ("1 day", 86400),
            ("+1 week", 7 * 86400),
            ("1 fortnight", 14 * 86400),
            ("1 day 2 hours", 86400 + 7200),
            ("1d2h30m", 86400 + 7200 + 1800),
            ("45s", 45),
        ],
    )
    def testRelativeDurations(self, expiry, seconds):
        assert resolveExpiry(expiry, now=NOW) == NOW + seconds

    def testMonthUsesCalendar(self):
        nowDt = datetime.datetime.fromtimestamp(NOW)
        expected = int((nowDt + relativedelta(months=1)).timestamp())
        assert resolveExpiry("1 month", now=NOW) == expected

    def testFutureDate(self):
        expected = int(datetime.datetime(2030, 10, 1).timestamp())
        assert resolveExpiry("2030-10-01", now=NOW) == expected

    def testFutureDateTimeWithZone(self):
        expected = int(datetime.datetime(2030, 10, 1, 12, 0, tzinfo=datetime.timezone.utc).timestamp())
        assert resolveExpiry("2030-10-01T12:00:00Z", now=NOW) == expected

    @pytest.mark.parametrize("expiry", ["1999-05-08", "-1 day", "2001-01-01 00:00:00"])
    def testPastMomentNeverExpires(self, expiry):
        assert resolveExpiry(expiry, now=NOW) == 0

    @pytest.mark.parametrize(
        "expiry",
        [
            "iNvAlId DaTeStRiNg",
            "tomorrowish",
            "12 parsecs",
            "2030-13-45",
            "next blursday",
            "100000 years",
            "-100000 years",
            "99999999999d",
            "99999999999999999999",
        ],
    )
    def testInvalidStringRaises(self, expiry):
        with pytest.raises(InvalidExpiryError):
            resolveExpiry(expiry, now=NOW)

    def testInvalidExpiryIsValueError(self):
        with pytest.raises(ValueError):
            resolveExpiry("not a date", now=NOW)

    def testTomorrowIsNextMidnight(self):
        midnight = datetime.datetime.fromtimestamp(NOW).replace(hour=0, minute=0, second=0, microsecond=0)
        expected = int((midnight + relativedelta(days=1)).timestamp())

        assert resolveExpiry("tomorrow", now=NOW) == expected
        assert resolveExpiry(" Tomorrow ", now=NOW) == expected

    @pytest.mark.parametrize("weekday, index", [("monday", 0), ("tuesday", 1), ("sunday", 6)])
    def testNextWeekday(self, weekday, index):
        moment = datetime.datetime.fromtimestamp(resolveExpiry(f"next {weekday}", now=NOW))
        today = datetime.datetime.fromtimestamp(NOW).date()

        assert moment.weekday() == index
        assert (moment.hour, moment.minute, moment.second) == (0, 0, 0)
        assert 1 <= (moment.date() - today).days <= 7

    def testNextUnit(self):
        nowDt = datetime.datetime.fromtimestamp(NOW)

        assert resolveExpiry("next week", now=NOW) == int((nowDt + relativedelta(weeks=1)).timestamp())
        assert resolveExpiry("next month", now=NOW) == int((nowDt + relativedelta(months=1)).timestamp())
        assert resolveExpiry("next hour", now=NOW) == NOW + 3600


class TestResolveExpiryObjects:
    """timedelta and datetime values, dood!"""

    @pytest.mark.parametrize("expiry", [10**20, float("inf"), float("nan"), datetime.timedelta(days=999_999_999)])
    def testOutOfRangeRaises(self, expiry):
        with pytest.raises(InvalidExpiryError):
            resolveExpiry(expiry, now=NOW)

    def testLastRepresentableMoment(self):
        assert resolveExpiry(253402300799, now=NOW) == 253402300799

    def testTimedelta(self):
        assert resolveExpiry(datetime.timedelta(minutes=5), now=NOW) == NOW + 300

    def testNonPositiveTimedelta(self):
        assert resolveExpiry(datetime.timedelta(0), now=NOW) == 0
        assert resolveExpiry(datetime.timedelta(seconds=-10), now=NOW) == 0

    def testFutureDatetime(self):
        moment = datetime.datetime.fromtimestamp(NOW + 1000)
        assert resolveExpiry(moment, now=NOW) == NOW + 1000

    def testPastDatetime(self):
        moment = datetime.datetime.fromtimestamp(NOW - 1000)
        assert resolveExpiry(moment, now=NOW) == 0


class TestParseRelativeExpiry:
    """Relative duration parser, dood!"""

    def testSingleUnit(self):
        assert parseRelativeExpiry("2 days") == relativedelta(days=2)

    def testCombinedUnits(self):
        assert parseRelativeExpiry("+1 week 3 days") == relativedelta(weeks=1, days=3)

    def testNegative(self):
        assert parseRelativeExpiry("-1 day") == relativedelta(days=-1)

    def testRepeatedUnitsAreSummed(self):
        assert parseRelativeExpiry("1 hour 2 hours") == relativedelta(hours=3)

    @pytest.mark.parametrize("text", ["", "   ", "2030-10-01", "soon", "2 parsecs", "1d2h", "days"])
    def testNotRelative(self, text):
        assert parseRelativeExpiry(text) is None
