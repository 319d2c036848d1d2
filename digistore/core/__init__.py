"""Core configuration, storage and cross-cutting concerns"""
