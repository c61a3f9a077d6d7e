"""
Utilities for the Quarantine Deadlock Simulator.
Contains the logging sink and the scenario loader.
"""
