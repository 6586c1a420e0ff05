"""SQL synthesis for revisioning storage and triggers.

Synthesizers are pure: they turn ``TableGroup`` models into ``Statement``
lists and never touch the database.

Usage:
    from db_revisioning.synth import DDLSynthesizer, TriggerSynthesizer, Dialect

    ddl = DDLSynthesizer()
    triggers = TriggerSynthesizer(Dialect.LEGACY_SIGNAL)
    statements = ddl.group_storage(group) + triggers.group_triggers(group)
"""

from db_revisioning.synth.ddl import DDLSynthesizer
from db_revisioning.synth.dialect import Dialect
from db_revisioning.synth.sql import Statement, quote_identifier, quote_literal
from db_revisioning.synth.triggers import TriggerSynthesizer

__all__ = [
    "DDLSynthesizer",
    "TriggerSynthesizer",
    "Dialect",
    "Statement",
    "quote_identifier",
    "quote_literal",
]
