"""
Models package for the Quarantine Deadlock Simulator.
Contains resources, agents, arena rings and the quarantine arena.
"""
