"""Vivaldi network coordinates, a client that refines them, and a simulation harness."""