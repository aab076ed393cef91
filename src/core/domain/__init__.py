"""Modelos y entidades del dominio.

Estructuras de datos puras (Pydantic v2) y funciones puras sobre ellas. El
dominio no sabe nada de HTTP, archivos ni CLI: solo conceptos del catálogo.
"""
