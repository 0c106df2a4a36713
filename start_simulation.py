"""
start_simulation.py

Starts a Flask + Socket.IO server, serves `templates/fleet_dashboard.html`
and runs the vending fleet simulation in a background thread while emitting
every handled event and periodic snapshots to the connected dashboard clients.
"""
import threading
import time
import webbrowser

from flask import Flask, jsonify, render_template
from flask_socketio import SocketIO

from bus import CascadeDepthExceeded
from config import DEFAULT_STOCK_LEVEL, LOW_STOCK_THRESHOLD
from events import EventType, MachineRefillEvent, MachineSaleEvent
from logger import get_logger, setup_logger
from model import FleetModel

logger = get_logger("dashboard")

app = Flask(__name__)
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')

# Runtime state
sim = None
sim_thread = None
# every publish into sim.bus happens under this lock: the registry has a single writer
sim_lock = threading.Lock()
sim_running = False
sim_speed = 1.0  # multiplier, higher is faster (reduces sleep)

MANUAL_EVENTS = {
    EventType.SALE.value: MachineSaleEvent,
    EventType.REFILL.value: MachineRefillEvent,
}


class SocketForwarder:
    """Bus subscriber that mirrors each published event to dashboard clients."""

    def __init__(self):
        self.model = None

    def handle(self, event):
        data = event.to_dict()
        data['step'] = self.model.current_step if self.model is not None else 0
        socketio.emit('fleet_event', data)


def create_simulation(seed=None, steps=30):
    """Create a fresh simulation instance whose events are forwarded to clients."""
    forwarder = SocketForwarder()
    m = FleetModel(steps=steps, seed=seed, observers=[forwarder])
    forwarder.model = m
    return m


def snapshot(simulation):
    """Produce a JSON-serializable snapshot of the simulation state."""
    machines = [
        {
            'id': machine.id,
            'stock_level': machine.stock_level,
            'low_stock': machine.stock_level < LOW_STOCK_THRESHOLD,
        }
        for machine in simulation.machines
    ]
    return {
        'machines': machines,
        'counts': {event_type.value: simulation.tally.count(event_type) for event_type in EventType},
        'recent_events': [event.to_dict() for event in simulation.tally.recent],
        'current_step': simulation.current_step,
        'max_steps': simulation.max_steps,
        'running': sim_running,
    }


def simulation_runner(simulation):
    global sim_running
    base_sleep = 0.7
    sim_running = True

    socketio.emit('simulation_update', snapshot(simulation))

    try:
        for _ in range(simulation.max_steps):
            if not sim_running:
                break
            with sim_lock:
                simulation.step()
                data = snapshot(simulation)
            socketio.emit('simulation_update', data)

            # small sleep controlled by speed multiplier
            time.sleep(max(0.01, base_sleep / max(0.01, sim_speed)))

        socketio.emit('simulation_finished', {'current_step': simulation.current_step})
    except CascadeDepthExceeded as e:
        logger.exception("Simulation stopped by a runaway cascade")
        socketio.emit('simulation_error', {'message': str(e)})
    finally:
        sim_running = False


def notify_error(message):
    socketio.emit('notification', {'message': message, 'type': 'error'})
    return {'status': 'error', 'error': message}


@app.route('/')
def index():
    return render_template('fleet_dashboard.html')


@app.route('/api/data')
def api_data():
    with sim_lock:
        if sim:
            return jsonify(snapshot(sim))
    return jsonify(snapshot(create_simulation()))


@socketio.on('connect')
def on_connect():
    # send current snapshot immediately
    with sim_lock:
        if sim:
            socketio.emit('simulation_update', snapshot(sim))


@socketio.on('start_simulation')
def on_start(data=None):
    global sim, sim_thread
    with sim_lock:
        if sim_running:
            return {'status': 'running'}

        steps = 30
        if data and isinstance(data, dict):
            try:
                steps = int(data.get('steps', 30))
            except (TypeError, ValueError):
                return notify_error('steps must be a whole number')

        steps = max(1, min(100, steps))

        sim = create_simulation(steps=steps)
        sim_thread = threading.Thread(target=simulation_runner, args=(sim,), daemon=True)
        sim_thread.start()
    return {'status': 'ok', 'steps': steps}


@socketio.on('stop_simulation')
def on_stop(data=None):
    global sim_running
    sim_running = False
    socketio.emit('simulation_update', {'status': 'stopped'})


@socketio.on('reset_simulation')
def on_reset(data=None):
    global sim, sim_running
    sim_running = False
    # small wait to ensure runner exits
    time.sleep(0.1)
    with sim_lock:
        sim = create_simulation(steps=30)
        data = snapshot(sim)
    socketio.emit('simulation_reset', data)


@socketio.on('set_speed')
def on_set_speed(data):
    global sim_speed
    try:
        sim_speed = max(0.01, float((data or {}).get('speed', 1.0)))
    except (TypeError, ValueError):
        return notify_error('speed must be a number')
    return {'status': 'ok', 'speed': sim_speed}


@socketio.on('add_machine')
def on_add_machine(data):
    """Register a new machine at runtime.
    Expects data: { 'id': '004', 'stock_level': 10 }"""
    machine_id = str((data or {}).get('id', '')).strip()
    if not machine_id:
        return notify_error('Machine id is required')

    try:
        stock_level = int((data or {}).get('stock_level', DEFAULT_STOCK_LEVEL))
    except (TypeError, ValueError):
        return notify_error('Invalid stock level value')

    with sim_lock:
        if sim is None:
            return notify_error('No simulation running')
        try:
            sim.add_machine(machine_id, stock_level)
        except ValueError as e:
            return notify_error(str(e))
        data = snapshot(sim)

    socketio.emit('simulation_update', data)
    socketio.emit('notification', {'message': f'Machine {machine_id} added', 'type': 'success'})
    return {'status': 'ok', 'id': machine_id}


@socketio.on('publish_event')
def on_publish_event(data):
    """Publish a manual sale or refill.
    Expects data: { 'type': 'sale' | 'refill', 'machine_id': '001', 'quantity': 2 }"""
    data = data or {}
    event_cls = MANUAL_EVENTS.get(data.get('type'))
    if event_cls is None:
        return notify_error(f"Unsupported event type {data.get('type')!r}")

    try:
        event = event_cls(str(data.get('machine_id', '')), int(data.get('quantity', 0)))
    except (TypeError, ValueError) as e:
        return notify_error(str(e))

    with sim_lock:
        if sim is None:
            return notify_error('No simulation running')
        try:
            sim.bus.publish(event)
        except CascadeDepthExceeded as e:
            return notify_error(str(e))
        snap = snapshot(sim)

    socketio.emit('simulation_update', snap)
    return {'status': 'ok', 'event': event.to_dict()}


def open_browser_delayed(url, delay=1.0):
    def _open():
        time.sleep(delay)
        webbrowser.open(url)
    threading.Thread(target=_open, daemon=True).start()


if __name__ == '__main__':
    setup_logger()

    # Prepare a simulation instance so clients see an initial state
    sim = create_simulation(steps=30)

    open_browser_delayed('http://127.0.0.1:5000', delay=1.0)

    # Use socketio.run (will block)
    socketio.run(app, host='0.0.0.0', port=5000)
