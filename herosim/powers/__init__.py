"""
Powers module for the combat engine.

This module holds the power catalog, the declared power records carried by a
character, the cost engine and the attack profiles derived from powers.
"""