"""
orderflow - ingesta de pedidos desde Kafka con lectura cache-aside.
"""
