"""
Keeper: Call of Cthulhu session companion (dice engine, realtime sync, session API).
"""
