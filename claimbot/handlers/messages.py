MENU_OPTIONS = (
    "Reply with:\n"
    "• DELAY - Report a delayed journey\n"
    "• STATUS - Check your claim status\n"
    "• HELP - Get help"
)

WELCOME = (
    "Welcome to RailRepay! 🚂\n\n"
    "I help you claim compensation for delayed trains automatically.\n\n"
    "To get started, I need to verify your phone number. Reply YES to receive a verification code, "
    "or TERMS to read our terms of service first."
)

WELCOME_BACK = f"Welcome back! 👋\n\nWhat would you like to do today?\n\n{MENU_OPTIONS}"

RESUME_VERIFICATION = (
    "Welcome back! You haven't completed verification yet.\n\n"
    "To continue, I need to verify your phone number. Reply YES to receive a verification code, "
    "or TERMS to read our terms of service first."
)

CODE_SENT = (
    "Great! I've sent a verification code to your phone.\n\n"
    "Please reply with the 6-digit code to verify your number.\n\n"
    "(The code will arrive via SMS)"
)

VERIFIED = (
    "✓ Phone verified successfully!\n\n"
    "You're all set up and ready to start claiming for delayed journeys.\n\n"
    f"What would you like to do?\n\n{MENU_OPTIONS}"
)

JOURNEY_DATE_PROMPT = (
    "Great! Let's report your delayed journey.\n\n"
    "When did you travel? (when was your journey?)\n\n"
    "You can say:\n"
    '• "today"\n'
    '• "yesterday"\n'
    '• "15 Nov"\n'
    '• "15/11/2024"\n\n'
    "(Claims must be made within 90 days of travel)"
)

CLAIM_STATUS = (
    "Here's the status of your claims:\n\n"
    "(No active claims yet)\n\n"
    "Reply DELAY to start a new claim, or MENU to go back."
)

HELP = (
    "Here's what I can help you with:\n\n"
    "Commands:\n"
    "• DELAY - Report a delayed journey\n"
    "• STATUS - Check your claim status\n"
    "• HELP - Show this menu\n"
    "• LOGOUT - Sign out"
)

MENU_HINT = (
    "Sorry, I didn't understand that.\n\n"
    "Try one of these commands:\n"
    "• DELAY - Report a delayed journey\n"
    "• STATUS - Check your claim status\n"
    "• HELP - Get help\n"
    "• LOGOUT - Sign out"
)

LOGGED_OUT = "You've been signed out. Thanks for using RailRepay!\n\nSend any message to start again. Goodbye! 👋"

SERVICE_UNAVAILABLE = "Sorry, I'm having trouble reaching one of our services. Please try again in a moment."
