"""enforce-aaa — Arrange / Act / Assert markers for PHPUnit test methods"""

__version__ = "0.1.0"
