"""Clocks, events, coalescing, queries, keyring responses and wire messages for cluster membership."""