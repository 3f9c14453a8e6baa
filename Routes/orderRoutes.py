from flask import Blueprint
from Controllers.orderController import (
    create_order, get_user_orders, get_orders_by_status, filter_orders,
    get_order_by_id, get_order_by_number, get_order_timeline, get_order_receipt,
    reorder, cancel_order, update_order_status
)

# ----------------------------
# Order API routes
# ----------------------------
order_routes = Blueprint('order_routes', __name__, url_prefix='/api/v1/orders')

order_routes.add_url_rule('', view_func=create_order, methods=['POST'])
order_routes.add_url_rule('', view_func=get_user_orders, methods=['GET'])
order_routes.add_url_rule('/status/<status>', view_func=get_orders_by_status, methods=['GET'])
order_routes.add_url_rule('/filter', view_func=filter_orders, methods=['GET'])
order_routes.add_url_rule('/number/<order_number>', view_func=get_order_by_number, methods=['GET'])
order_routes.add_url_rule('/<order_id>', view_func=get_order_by_id, methods=['GET'])
order_routes.add_url_rule('/<order_id>/timeline', view_func=get_order_timeline, methods=['GET'])
order_routes.add_url_rule('/<order_id>/receipt', view_func=get_order_receipt, methods=['GET'])
order_routes.add_url_rule('/<order_id>/reorder', view_func=reorder, methods=['POST'])
order_routes.add_url_rule('/<order_id>/cancel', view_func=cancel_order, methods=['PUT'])

# Admin-only transition
order_routes.add_url_rule('/<order_id>/status', view_func=update_order_status, methods=['PUT'])
