"""Helpdesk notification backend package.

Declared as a regular package so ``helpdesk`` never resolves to an unrelated
namespace package installed in the environment.
"""
