"""
Runtime wiring: the service container, mounted pages, the network client
and host collaborators.

Import from the submodules directly; ``sdui.runtime.hosts`` is loaded
while the actions package initializes.
"""
