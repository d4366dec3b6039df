"""Core reconciliation, cleaning, and intermediate representation modules.

WHY: The core package contains the stable heart of the refiner: the
IR dataclasses, the pure text transforms, and the reconciliation reducer.
These are consumed by the CLI, the HTTP API, and all formatters.

HOW: ir.py defines the data structures, dictation.py / cleaner.py /
tone.py / repeats.py are pure string functions, reconciler.py folds
recognition events into a TranscriptState, and session.py drives the
listening state machine around a recognition source.

RULES:
- IR dataclasses are the contract; change with care
- Nothing in core performs I/O except through injected collaborators
- Text functions are total: "" in, "" out, never raise
"""
