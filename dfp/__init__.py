"""Dynamic Frontend Proxy (DFP) reconfiguration core.

Sits in front of an HAProxy instance and:
 - validates service routing requests
 - checks the rendered configuration with the engine before applying it
 - reloads the engine without dropping connections (-sf)
 - confirms the reload by watching the pid file change

Request paths and hosts are matched against routing rules with a small
greedy glob matcher (see dfp.patterns).
"""
