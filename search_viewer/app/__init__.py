"""UI-facing state objects.

State QObjects expose Qt Properties with change signals so a widget or QML
layer can bind to them; the session owns and mutates them.
"""
