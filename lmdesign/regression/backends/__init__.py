"""
Regression backends.

Available backends:
    CPUQRBackend: QR decomposition on the CPU
"""

from lmdesign.regression.backends.cpu import CPUQRBackend

__all__ = [
    "CPUQRBackend",
]
