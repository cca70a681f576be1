"""Intent parsing and validation.

The intent layer turns one free-form notepad line into typed slot guesses: time phrases are
normalized, quantities and currencies extracted, day labels resolved to local instants, and slot
values validated.
"""
