"""decoplan: Produktionsplanung für die Textilveredelung"""

__version__ = "1.0.0"
