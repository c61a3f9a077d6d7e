"""
Analysis package for the Quarantine Deadlock Simulator.
Contains the event log, run metrics and batch analysis.
"""
