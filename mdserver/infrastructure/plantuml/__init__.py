"""PlantUML: кодировка диаграмм и преобразование markdown."""
from .encoder import encode_plantuml
from .transform import PlantUMLTransformer

__all__ = ["encode_plantuml", "PlantUMLTransformer"]
