"""Anki collection schema (version 11) and its JSON configuration blobs."""
from __future__ import annotations

from typing import Any, Dict

SCHEMA_VERSION = 11
DEFAULT_DECK_ID = 1
DEFAULT_CONF_ID = 1
FIELD_SEPARATOR = "\x1f"

CREATE_TABLES = (
    "CREATE TABLE col (id integer PRIMARY KEY, crt integer NOT NULL, mod integer NOT NULL, "
    "scm integer NOT NULL, ver integer NOT NULL, dty integer NOT NULL, usn integer NOT NULL, "
    "ls integer NOT NULL, conf text NOT NULL, models text NOT NULL, decks text NOT NULL, "
    "dconf text NOT NULL, tags text NOT NULL)",
    "CREATE TABLE notes (id integer PRIMARY KEY, guid text NOT NULL, mid integer NOT NULL, "
    "mod integer NOT NULL, usn integer NOT NULL, tags text NOT NULL, flds text NOT NULL, "
    "sfld text NOT NULL, csum integer NOT NULL, flags integer NOT NULL, data text NOT NULL)",
    "CREATE TABLE cards (id integer PRIMARY KEY, nid integer NOT NULL, did integer NOT NULL, "
    "ord integer NOT NULL, mod integer NOT NULL, usn integer NOT NULL, type integer NOT NULL, "
    "queue integer NOT NULL, due integer NOT NULL, ivl integer NOT NULL, factor integer NOT NULL, "
    "reps integer NOT NULL, lapses integer NOT NULL, left integer NOT NULL, odue integer NOT NULL, "
    "odid integer NOT NULL, flags integer NOT NULL, data text NOT NULL)",
    "CREATE TABLE revlog (id integer PRIMARY KEY, cid integer NOT NULL, usn integer NOT NULL, "
    "ease integer NOT NULL, ivl integer NOT NULL, lastIvl integer NOT NULL, factor integer NOT NULL, "
    "time integer NOT NULL, type integer NOT NULL)",
    "CREATE TABLE graves (usn integer NOT NULL, oid integer NOT NULL, type integer NOT NULL)",
)

INSERT_COL = "INSERT INTO col VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)"
INSERT_NOTE = "INSERT INTO notes VALUES (?,?,?,?,?,?,?,?,?,?,?)"
INSERT_CARD = "INSERT INTO cards VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)"

CARD_CSS = (
    ".card { font-family: arial; font-size: 20px; text-align: center; "
    "color: black; background-color: white; }"
)


def basic_model(model_id: int, deck_id: int, mod: int) -> Dict[str, Any]:
    """The single "Basic" note type: Front/Back fields, one template."""
    field_defaults = {"sticky": False, "rtl": False, "font": "Arial", "size": 20, "media": []}
    return {
        "id": model_id,
        "name": "Basic",
        "type": 0,
        "mod": mod,
        "usn": -1,
        "sortf": 0,
        "did": deck_id,
        "tmpls": [
            {
                "name": "Card 1",
                "qfmt": "{{Front}}",
                "afmt": "{{FrontSide}}<hr id=answer>{{Back}}",
                "ord": 0,
                "bafmt": "",
                "bqfmt": "",
                "did": None,
            }
        ],
        "flds": [
            {"name": "Front", "ord": 0, **field_defaults},
            {"name": "Back", "ord": 1, **field_defaults},
        ],
        "css": CARD_CSS,
        "latexPre": "",
        "latexPost": "",
        "req": [[0, "all", [0]]],
        "tags": [],
        "vers": [],
    }


def deck_entry(deck_id: int, name: str, mod: int, usn: int) -> Dict[str, Any]:
    return {
        "id": deck_id,
        "name": name,
        "mod": mod,
        "usn": usn,
        "lrnToday": [0, 0],
        "revToday": [0, 0],
        "newToday": [0, 0],
        "timeToday": [0, 0],
        "collapsed": False,
        "desc": "",
        "dyn": 0,
        "conf": DEFAULT_CONF_ID,
        "extendNew": 10,
        "extendRev": 50,
    }


def decks_blob(deck_id: int, deck_name: str, mod: int) -> Dict[str, Any]:
    return {
        str(DEFAULT_DECK_ID): deck_entry(DEFAULT_DECK_ID, "Default", 0, 0),
        str(deck_id): deck_entry(deck_id, deck_name, mod, -1),
    }


def dconf_blob() -> Dict[str, Any]:
    return {
        str(DEFAULT_CONF_ID): {
            "id": DEFAULT_CONF_ID,
            "name": "Default",
            "mod": 0,
            "usn": 0,
            "maxTaken": 60,
            "autoplay": True,
            "timer": 0,
            "replayq": True,
            "new": {"bury": True, "delays": [1, 10], "initialFactor": 2500, "ints": [1, 4, 7], "order": 1, "perDay": 20},
            "rev": {"bury": True, "ease4": 1.3, "fuzz": 0.05, "ivlFct": 1, "maxIvl": 36500, "perDay": 200, "minSpace": 1},
            "lapse": {"delays": [10], "leechAction": 0, "leechFails": 8, "minInt": 1, "mult": 0},
        }
    }


def conf_blob(model_id: int, card_count: int) -> Dict[str, Any]:
    return {
        "activeDecks": [DEFAULT_DECK_ID],
        "curDeck": DEFAULT_DECK_ID,
        "newSpread": 0,
        "collapseTime": 1200,
        "timeLim": 0,
        "estTimes": True,
        "dueCounts": True,
        "curModel": model_id,
        "nextPos": card_count + 1,
        "sortType": "noteFld",
        "sortBackwards": False,
        "addToCur": True,
    }
