"""Digistore1 storefront edge service"""
