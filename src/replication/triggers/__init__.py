"""
Replication triggers installed on the origin database.

Keyed triggers for tables with a primary key, full-mirror triggers otherwise.
"""

from .synthesizer import (
    TriggerOperation,
    TriggerSpec,
    TriggerStrategy,
    TriggerSynthesizer,
    build_trigger_specs,
    check_trigger_names,
    render_trigger_script,
    trigger_name,
)

__all__ = [
    'TriggerSynthesizer',
    'TriggerSpec',
    'TriggerOperation',
    'TriggerStrategy',
    'build_trigger_specs',
    'check_trigger_names',
    'render_trigger_script',
    'trigger_name',
]
