from flask import Blueprint
from Controllers.paymentController import (
    process_payment, retry_payment, get_payment, get_order_payments,
    get_payment_history, refund_payment, payment_webhook
)

# ----------------------------
# Payment API routes
# ----------------------------
payment_routes = Blueprint('payment_routes', __name__, url_prefix='/api/v1/payments')

payment_routes.add_url_rule('/process', view_func=process_payment, methods=['POST'])
payment_routes.add_url_rule('/webhook', view_func=payment_webhook, methods=['POST'])
payment_routes.add_url_rule('/user/history', view_func=get_payment_history, methods=['GET'])
payment_routes.add_url_rule('/order/<order_id>', view_func=get_order_payments, methods=['GET'])
payment_routes.add_url_rule('/<payment_id>', view_func=get_payment, methods=['GET'])
payment_routes.add_url_rule('/<payment_id>/retry', view_func=retry_payment, methods=['POST'])

# Admin-only
payment_routes.add_url_rule('/<payment_id>/refund', view_func=refund_payment, methods=['POST'])
