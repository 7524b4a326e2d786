# spabook/modules/notifications/templates.py
from __future__ import annotations

from datetime import date
from html import escape

from spabook.core.config import settings

_WEEKDAYS = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")
_MONTHS = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)

THEME = {
    "background": "#f9f0f2",
    "text": "#5a3a41",
    "accent": "#f195b2",
    "panel": "#f5d6df",
    "footer": "#f7e6eb",
    "muted": "#a57d87",
}


def spanish_long_date(day: date) -> str:
    """e.g. 'lunes, 15 de septiembre de 2025'."""
    return f"{_WEEKDAYS[day.weekday()]}, {day.day} de {_MONTHS[day.month - 1]} de {day.year}"


def booking_confirmation_subject() -> str:
    return f"Confirmación de cita - {settings.SPA_NAME}"


def booking_confirmation_html(procedure_name: str, day: date, slot: str) -> str:
    spa = escape(settings.SPA_NAME)
    t = THEME
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Confirmación de Cita - {spa}</title>
</head>
<body style="margin:0;padding:0;font-family:'Segoe UI',Tahoma,Geneva,Verdana,sans-serif;background-color:{t['background']};color:{t['text']};">
  <table width="100%" cellpadding="0" cellspacing="0" border="0" style="background-color:{t['background']};padding:20px 0;">
    <tr><td align="center">
      <table width="600" cellpadding="0" cellspacing="0" border="0" style="background-color:#ffffff;border-radius:20px;overflow:hidden;">
        <tr><td style="padding:30px 20px;text-align:center;">
          <h1 style="margin:0;font-size:28px;">¡Bienvenido a {spa}!</h1>
          <p style="margin:10px 0 0;font-size:16px;">Tu bienestar es nuestra prioridad</p>
        </td></tr>
        <tr><td style="padding:30px;text-align:center;">
          <h2 style="color:{t['accent']};font-size:24px;">¡Tu cita fue agendada con éxito!</h2>
          <p style="font-size:16px;line-height:1.6;">Gracias por elegir {spa}.</p>
          <table width="100%" cellpadding="0" cellspacing="0" border="0" style="background-color:{t['panel']};border-left:4px solid {t['accent']};padding:20px;margin:25px 0;text-align:left;">
            <tr><td>
              <h3 style="color:{t['accent']};margin-top:0;">Detalles de tu cita:</h3>
              <p><strong>Fecha:</strong> {escape(spanish_long_date(day))}</p>
              <p><strong>Hora:</strong> {escape(slot)}</p>
              <p><strong>Procedimiento:</strong> {escape(procedure_name)}</p>
            </td></tr>
          </table>
          <p style="font-size:16px;line-height:1.6;">Te esperamos. Si necesitas hacer cambios en tu cita, no dudes en contactarnos.</p>
          <p style="margin-top:20px;font-style:italic;color:{t['accent']};">Con amor,<br>El equipo de {spa}</p>
        </td></tr>
        <tr><td style="background-color:{t['footer']};padding:20px;text-align:center;font-size:14px;color:{t['muted']};">
          <p style="margin:0;">© {day.year} {spa}. Todos los derechos reservados.</p>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>
"""
