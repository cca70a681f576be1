"""Per-intent slot assemblers and their registry.

Each handler turns a `ModelResult` into the slot predictions shown for a line, attaching
validation verdicts to every slot.
"""
