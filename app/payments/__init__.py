"""Payments: gateway adapters, bill settlement and callback reconciliation"""
