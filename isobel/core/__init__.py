"""
Isobel Dashboard - Core
=======================

Configuration, logging, constants, permissions and persistence.
"""
