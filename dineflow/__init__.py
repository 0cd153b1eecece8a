"""
                DineFlow Order Service

Table ordering backend: customers order from a QR-coded table, the kitchen
display receives orders live and moves them through preparation.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
