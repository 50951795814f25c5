"""Subjects and bodies for the code emails sent to both account kinds."""
from typing import Tuple

_BOX = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; '
    'padding: 20px; border: 1px solid #ddd; border-radius: 5px;">{inner}</div>'
)


def reset_code_email(kind: str, code: str, minutes: int) -> Tuple[str, str, str]:
    caregiver = kind == "caregiver"
    subject = "Caregiver Password Reset Code" if caregiver else "Password Reset Code"
    account = "caregiver account" if caregiver else "account"
    text = (
        f"Your password reset code is: {code}\n\n"
        f"This code will expire in {minutes} minutes."
    )
    html = _BOX.format(inner=(
        f'<h2 style="color: #333366; text-align: center;">Password Reset</h2>'
        f"<p>You requested a password reset for your MindFlow {account}.</p>"
        f'<p>Your reset code is: <strong style="font-size: 24px;">{code}</strong></p>'
        f"<p><em>This code is valid for {minutes} minutes.</em></p>"
        "<p>If you didn't request this reset, please ignore this email.</p>"
    ))
    return subject, text, html


def verification_email(kind: str, code: str, minutes: int) -> Tuple[str, str, str]:
    caregiver = kind == "caregiver"
    subject = "Your Caregiver Email Verification Code" if caregiver else "Your Email Verification Code"
    role = "as a caregiver " if caregiver else ""
    text = (
        f"Your verification code is: {code}\n\n"
        f"This code is valid for {minutes} minutes."
    )
    html = _BOX.format(inner=(
        f'<h2 style="color: #005BBB; text-align: center;">Email Verification</h2>'
        f"<p>Thank you for signing up {role}for MindFlow!</p>"
        f'<p>Your verification code is: <strong style="font-size: 24px;">{code}</strong></p>'
        f"<p><em>This code is valid for {minutes} minutes.</em></p>"
        "<p>If you didn't sign up for an account, please ignore this email.</p>"
    ))
    return subject, text, html
