"""
maelnode.examples - Example node programs

Each module is runnable with `python -m maelnode.examples.<name>`.
"""
