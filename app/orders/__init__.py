"""Order domain: pricing, lifecycle state machine and aggregate building"""
