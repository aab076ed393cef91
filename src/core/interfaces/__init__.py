"""Contratos del core.

Protocols que implementan los adaptadores concretos, para que los servicios
dependan de abstracciones y se puedan ejercitar con fakes en memoria.
"""
