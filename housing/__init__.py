"""
Student housing listings: landlords publish properties, students browse them.
"""
