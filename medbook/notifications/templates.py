"""HTML bodies for patient-facing appointment mail."""

from html import escape

from medbook.notifications.payloads import BookingConfirmation, CancellationNotice

_CELL = 'padding: 8px; border: 1px solid #ddd;'


def _details_table(rows: list[tuple[str, str]]) -> str:
    body = ''.join(
        f'<tr><td style="{_CELL}"><strong>{escape(label)}</strong></td>'
        f'<td style="{_CELL}">{escape(value)}</td></tr>'
        for label, value in rows
    )
    return f'<table style="border-collapse: collapse; width: 100%; margin: 20px 0;">{body}</table>'


def _wrap(heading: str, colour: str, paragraphs: list[str], table: str) -> str:
    intro, *rest = paragraphs
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: {colour};">{escape(heading)}</h2>'
        f'{intro}{table}'
        + ''.join(rest)
        + '<p>Best regards,<br>Medical Booking System</p></div>'
    )


def render_booking_confirmation(payload: BookingConfirmation) -> tuple[str, str]:
    subject = f'Appointment Confirmed - {payload.appointment_type} with {payload.doctor_name}'
    table = _details_table([
        ('Doctor', payload.doctor_name),
        ('Type', payload.appointment_type),
        ('Date', payload.date),
        ('Time', payload.time),
        ('Duration', f'{payload.duration_minutes} minutes'),
    ])
    html = _wrap(
        'Appointment Confirmed',
        '#2563eb',
        [
            f'<p>Dear {escape(payload.patient_name)},</p>'
            '<p>Your appointment has been successfully booked. Here are the details:</p>',
            '<p>Please arrive a few minutes early. If you need to reschedule or cancel, '
            'please do so through the app.</p>',
        ],
        table,
    )
    return subject, html


def render_cancellation_notice(payload: CancellationNotice) -> tuple[str, str]:
    subject = f'Appointment Cancelled - {payload.appointment_date} with {payload.doctor_name}'
    table = _details_table([
        ('Doctor', payload.doctor_name),
        ('Date', payload.appointment_date),
        ('Time', payload.appointment_time),
        ('Reason', payload.reason),
    ])
    html = _wrap(
        'Appointment Cancelled',
        '#dc2626',
        [
            f'<p>Dear {escape(payload.patient_name)},</p>'
            f'<p>{escape(payload.doctor_name)} has had to cancel your appointment.</p>',
            '<p>We apologise for the inconvenience. You can book a new time through the app.</p>',
        ],
        table,
    )
    return subject, html
