# ==============================================================================
# API JSON (Flask)
# ==============================================================================
# Capa delgada sobre DatabaseManager: parsea la petición, delega y
# serializa. No contiene reglas de negocio.
#
# Errores → HTTP:
#   ValidationError → 400    NotFoundError → 404
#   StorageTimeout  → 503    StorageError  → 500
#
# El usuario que ejecuta la acción llega en el header X-User (la
# autenticación vive fuera de esta API).
# ==============================================================================

from typing import Any, Dict, Optional

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from conejo_pos import __version__
from conejo_pos.config import Settings
from conejo_pos.database_manager import DatabaseManager
from conejo_pos.errors import NotFoundError, StorageError, StorageTimeout, ValidationError
from conejo_pos.utils.logger import get_logger

logger = get_logger("api")

EXTENSION_KEY = 'conejo_pos'


# ==============================================================================
# HELPERS
# ==============================================================================

def _manager() -> DatabaseManager:
    return current_app.extensions[EXTENSION_KEY]


def _actor() -> Optional[str]:
    return request.headers.get('X-User') or None


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('El cuerpo debe ser un objeto JSON')
    return data


def _flag(name: str) -> bool:
    return (request.args.get(name) or '').lower() in ('1', 'true', 'yes')


def _ok(payload: Dict[str, Any], status: int = 200):
    return jsonify({'success': True, **payload}), status


def _many(key: str, items, serialize=lambda e: e.to_dict()):
    return _ok({key: [serialize(item) for item in items], 'count': len(items)})


# ==============================================================================
# ERRORES
# ==============================================================================

def _register_error_handlers(app: Flask) -> None:

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return jsonify({'success': False, 'error': str(e), 'errors': e.errors}), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(e: NotFoundError):
        return jsonify({'success': False, 'error': str(e)}), 404

    @app.errorhandler(StorageTimeout)
    def handle_timeout(e: StorageTimeout):
        logger.warning(f"Timeout de almacenamiento en {request.path}: {e}")
        return jsonify({'success': False, 'error': 'Almacenamiento ocupado, intenta de nuevo'}), 503

    @app.errorhandler(StorageError)
    def handle_storage(e: StorageError):
        logger.error(f"Error de almacenamiento en {request.path}: {e}")
        return jsonify({'success': False, 'error': 'Error de almacenamiento'}), 500

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return jsonify({'success': False, 'error': e.description}), e.code


# ==============================================================================
# RUTAS
# ==============================================================================

def _register_routes(app: Flask) -> None:

    @app.route('/health')
    def health():
        manager = _manager()
        return jsonify({
            'status': 'ok',
            'version': __version__,
            'backend': type(manager.backend).__name__,
        })

    # --------------------------------------------------------------------------
    # Ventas
    # --------------------------------------------------------------------------

    @app.route('/api/records', methods=['GET'])
    def list_records():
        records = _manager().list_sales(
            start=request.args.get('start'),
            end=request.args.get('end'),
            service=request.args.get('service'),
            client=request.args.get('client'),
            include_deleted=_flag('includeDeleted'),
            payment=request.args.get('payment'),
        )
        return _many('records', records)

    @app.route('/api/records', methods=['POST'])
    def create_record():
        record = _manager().create_sale(_body(), actor=_actor())
        return _ok({'record': record.to_dict(), 'warnings': record.stock_warnings}, 201)

    @app.route('/api/records/<record_id>', methods=['GET'])
    def get_record(record_id):
        return _ok({'record': _manager().get_sale(record_id).to_dict()})

    @app.route('/api/records/<record_id>', methods=['PUT'])
    def update_record(record_id):
        record = _manager().update_sale(record_id, _body(), actor=_actor())
        return _ok({'record': record.to_dict()})

    @app.route('/api/records/<record_id>', methods=['DELETE'])
    def delete_record(record_id):
        record = _manager().delete_sale(record_id, actor=_actor())
        return _ok({'record': record.to_dict()})

    # --------------------------------------------------------------------------
    # Productos
    # --------------------------------------------------------------------------

    @app.route('/api/products', methods=['GET'])
    def list_products():
        manager = _manager()
        if _flag('lowStock'):
            products = manager.get_low_stock_products()
        else:
            products = manager.list_products(
                category=request.args.get('category'),
                include_inactive=_flag('includeInactive'),
            )
        return _many('products', products, lambda p: p.to_response())

    @app.route('/api/products', methods=['POST'])
    def create_product():
        product = _manager().create_product(_body(), actor=_actor())
        return _ok({'product': product.to_response()}, 201)

    @app.route('/api/products/<product_id>', methods=['GET'])
    def get_product(product_id):
        return _ok({'product': _manager().get_product(product_id).to_response()})

    @app.route('/api/products/<product_id>', methods=['PUT'])
    def update_product(product_id):
        product = _manager().update_product(product_id, _body(), actor=_actor())
        return _ok({'product': product.to_response()})

    @app.route('/api/products/<product_id>', methods=['DELETE'])
    def delete_product(product_id):
        product = _manager().soft_delete_product(product_id, actor=_actor())
        return _ok({'product': product.to_response()})

    @app.route('/api/products/<product_id>/stock', methods=['POST'])
    def adjust_stock(product_id):
        data = _body()
        product = _manager().adjust_stock(
            product_id, data.get('amount'), data.get('op', 'add'), actor=_actor()
        )
        return _ok({'product': product.to_response()})

    # --------------------------------------------------------------------------
    # Sesiones de coworking
    # --------------------------------------------------------------------------

    @app.route('/api/sessions', methods=['GET'])
    def list_sessions():
        sessions = _manager().list_sessions(request.args.get('status'))
        return _many('sessions', sessions)

    @app.route('/api/sessions', methods=['POST'])
    def open_session():
        session = _manager().open_coworking_session(_body(), actor=_actor())
        return _ok({'session': session.to_dict()}, 201)

    @app.route('/api/sessions/<session_id>', methods=['GET'])
    def get_session(session_id):
        return _ok({'session': _manager().get_session(session_id).to_dict()})

    @app.route('/api/sessions/<session_id>/pause', methods=['POST'])
    def pause_session(session_id):
        return _ok({'session': _manager().pause_session(session_id).to_dict()})

    @app.route('/api/sessions/<session_id>/resume', methods=['POST'])
    def resume_session(session_id):
        return _ok({'session': _manager().resume_session(session_id).to_dict()})

    @app.route('/api/sessions/<session_id>/products', methods=['POST'])
    def add_session_product(session_id):
        data = _body()
        session = _manager().add_line_item(
            session_id, data.get('productId'), data.get('quantity', 1), actor=_actor()
        )
        return _ok({'session': session.to_dict(), 'warnings': session.stock_warnings})

    @app.route('/api/sessions/<session_id>/products/<product_id>', methods=['DELETE'])
    def remove_session_product(session_id, product_id):
        quantity = request.args.get('quantity', type=int)
        session = _manager().remove_line_item(session_id, product_id, quantity)
        return _ok({'session': session.to_dict()})

    @app.route('/api/sessions/<session_id>/close', methods=['POST'])
    def close_session(session_id):
        session = _manager().close_session(session_id, _body().get('payment'), actor=_actor())
        return _ok({'session': session.to_dict()})

    @app.route('/api/sessions/<session_id>/cancel', methods=['POST'])
    def cancel_session(session_id):
        session = _manager().cancel_session(session_id, actor=_actor())
        return _ok({'session': session.to_dict()})

    # --------------------------------------------------------------------------
    # Clientes
    # --------------------------------------------------------------------------

    @app.route('/api/customers', methods=['GET'])
    def list_customers():
        manager = _manager()
        term = request.args.get('q')
        customers = manager.search_customers(term) if term else manager.list_customers()
        return _many('customers', customers)

    @app.route('/api/customers', methods=['POST'])
    def upsert_customer():
        customer = _manager().upsert_customer(_body(), actor=_actor())
        return _ok({'customer': customer.to_dict()})

    @app.route('/api/customers/<customer_id>', methods=['GET'])
    def get_customer(customer_id):
        return _ok({'customer': _manager().get_customer(customer_id).to_dict()})

    @app.route('/api/customers/<customer_id>', methods=['DELETE'])
    def delete_customer(customer_id):
        customer = _manager().soft_delete_customer(customer_id, actor=_actor())
        return _ok({'customer': customer.to_dict()})

    @app.route('/api/customers/<customer_id>/summary', methods=['GET'])
    def customer_summary(customer_id):
        return _ok({'summary': _manager().get_customer_summary(customer_id)})

    # --------------------------------------------------------------------------
    # Membresías
    # --------------------------------------------------------------------------

    @app.route('/api/memberships', methods=['GET'])
    def list_memberships():
        memberships = _manager().list_memberships(
            status=request.args.get('status'),
            customer_id=request.args.get('customerId'),
        )
        return _many('memberships', memberships)

    @app.route('/api/memberships', methods=['POST'])
    def create_membership():
        membership = _manager().create_membership(_body(), actor=_actor())
        return _ok({'membership': membership.to_dict()}, 201)

    @app.route('/api/memberships/<membership_id>/renew', methods=['POST'])
    def renew_membership(membership_id):
        data = _body()
        membership = _manager().renew_membership(
            membership_id, data.get('paymentMethod'), data.get('amount'),
            data.get('notes'), actor=_actor()
        )
        return _ok({'membership': membership.to_dict()})

    @app.route('/api/memberships/<membership_id>/cancel', methods=['POST'])
    def cancel_membership(membership_id):
        membership = _manager().cancel_membership(
            membership_id, _body().get('reason', ''), actor=_actor()
        )
        return _ok({'membership': membership.to_dict()})

    @app.route('/api/memberships/expire', methods=['POST'])
    def expire_memberships():
        return _many('expired', _manager().expire_memberships())

    # --------------------------------------------------------------------------
    # Gastos y cortes de caja
    # --------------------------------------------------------------------------

    @app.route('/api/expenses', methods=['GET'])
    def list_expenses():
        expenses = _manager().list_expenses(
            start=request.args.get('start'),
            end=request.args.get('end'),
            category=request.args.get('category'),
            status=request.args.get('status'),
        )
        return _many('expenses', expenses)

    @app.route('/api/expenses', methods=['POST'])
    def create_expense():
        expense = _manager().create_expense(_body(), actor=_actor())
        return _ok({'expense': expense.to_dict()}, 201)

    @app.route('/api/expenses/<expense_id>', methods=['PUT'])
    def update_expense(expense_id):
        expense = _manager().update_expense(expense_id, _body(), actor=_actor())
        return _ok({'expense': expense.to_dict()})

    @app.route('/api/expenses/<expense_id>', methods=['DELETE'])
    def delete_expense(expense_id):
        expense = _manager().delete_expense(expense_id, actor=_actor())
        return _ok({'expense': expense.to_dict()})

    @app.route('/api/cashcuts', methods=['GET'])
    def list_cash_cuts():
        return _many('cashcuts', _manager().list_cash_cuts(request.args.get('limit', type=int)))

    @app.route('/api/cashcuts', methods=['POST'])
    def create_cash_cut():
        data = _body()
        cut = _manager().create_cash_cut(
            start=data.get('startDate'),
            end=data.get('endDate'),
            cut_type=data.get('cutType', 'manual'),
            notes=data.get('notes', ''),
            actor=_actor(),
        )
        return _ok({'cashcut': cut.to_dict()}, 201)

    # --------------------------------------------------------------------------
    # Reportes
    # --------------------------------------------------------------------------

    @app.route('/api/reports/financial', methods=['GET'])
    def financial_report():
        report = _manager().get_financial_report(
            start=request.args.get('start'), end=request.args.get('end')
        )
        return _ok({'report': report})

    @app.route('/api/reports/daily', methods=['GET'])
    def daily_stats():
        days = request.args.get('days', 7, type=int)
        return _ok({'days': _manager().get_daily_stats(days)})

    @app.route('/api/reports/today', methods=['GET'])
    def today_summary():
        return _ok({'summary': _manager().get_today_summary()})

    # --------------------------------------------------------------------------
    # Usuarios
    # --------------------------------------------------------------------------

    @app.route('/api/users', methods=['GET'])
    def list_users():
        users = _manager().list_users(include_inactive=_flag('includeInactive'))
        return _many('users', users, lambda u: u.to_public_dict())

    @app.route('/api/users', methods=['POST'])
    def create_user():
        data = _body()
        user = _manager().create_user(
            data.get('name'), data.get('email'), data.get('password'),
            data.get('role', 'employee'), actor=_actor()
        )
        return _ok({'user': user.to_public_dict()}, 201)

    @app.route('/api/users/<user_id>', methods=['DELETE'])
    def deactivate_user(user_id):
        user = _manager().deactivate_user(user_id, actor=_actor())
        return _ok({'user': user.to_public_dict()})


# ==============================================================================
# FACTORY
# ==============================================================================

def create_app(
    settings: Optional[Settings] = None,
    manager: Optional[DatabaseManager] = None
) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        settings: Configuración (default: Settings.from_env())
        manager: Fachada ya construida (tests)
    """
    app = Flask(__name__)
    app.json.sort_keys = False

    if manager is None:
        manager = DatabaseManager(settings or Settings.from_env())
    app.extensions[EXTENSION_KEY] = manager
    app.config['CONEJO_SETTINGS'] = manager.settings

    _register_error_handlers(app)
    _register_routes(app)

    logger.info(f"API lista ({type(manager.backend).__name__})")
    return app
