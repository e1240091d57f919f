"""
Lectura de despachos desde Google Sheets (export CSV por hoja).

Cada hoja es una tabla cruzada: fechas en la cabecera, una fila por tienda.
"""
