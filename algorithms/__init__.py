"""
Algorithms package for the Quarantine Deadlock Simulator.
Contains the ring-probe deadlock detection heuristic.
"""
