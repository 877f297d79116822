"""Change-detection core for changeaudit.

Pure, synchronous functions with no I/O.

Submodules:
    paths       -- Dotted-path get/set and the MISSING sentinel.
    values      -- Existence, structural/semantic equality, stringification.
    arrays      -- Set diff for primitive lists, key diff for object lists.
    context     -- Context extraction and merging for change records.
    engine      -- Recursive diff producing ChangeRecord lists.
    patch       -- Patch-operator simulation against a before snapshot.
    validation  -- Setup-time FieldSpec validation and parsing.
"""
