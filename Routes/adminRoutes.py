from flask import Blueprint
from Controllers.orderController import bulk_update_status, admin_list_orders, admin_order_stats
from Controllers.paymentController import admin_payment_stats

admin_routes = Blueprint("admin_routes", __name__, url_prefix='/api/v1/admin')

# Orders
admin_routes.add_url_rule('/orders', view_func=admin_list_orders, methods=['GET'])
admin_routes.add_url_rule('/orders/stats', view_func=admin_order_stats, methods=['GET'])
admin_routes.add_url_rule('/orders/bulk-status', view_func=bulk_update_status, methods=['PUT'])

# Payments
admin_routes.add_url_rule('/payments/stats', view_func=admin_payment_stats, methods=['GET'])
