import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from training_architecture import db
from training_architecture.dag_validator import compute_metrics, find_cycle_path
from training_architecture.link_store import SqliteLinkStore

DB_PATH = "./data/architecture.db"


def verify(db_path=DB_PATH):
    if not os.path.exists(db_path):
        print(f"Error: {db_path} not found.")
        return 1

    con = db.get_connection(db_path)
    store = SqliteLinkStore(con)
    ids = [r["id"] for r in con.execute("SELECT id FROM Trainings ORDER BY id")]
    trainings = store.get_trainings(ids)

    broken = 0
    print("-" * 40)
    print("ARCHITECTURE VERIFICATION REPORT")
    print("-" * 40)
    for tid in ids:
        links = store.get_all_links(tid)
        m = compute_metrics(links)
        t = trainings[tid]
        print(f"[{tid}] {t.fullname} (granularity={int(t.granularity)})")
        print(f"  Links:    {m['total_links']}")
        print(f"  LUs:      {m['total_lus']} ({m['root_count']} root, {m['dangling_lus']} dangling)")
        print(f"  Courses:  {m['total_courses']}")
        if m["is_dag"]:
            print(f"  Depth:    {m['max_depth']}")
        else:
            broken += 1
            cycle = " -> ".join(str(n) for n in find_cycle_path(links))
            print(f"  CYCLE:    {cycle}")
    print("-" * 40)
    print(f"Trainings: {len(ids)}, cyclic: {broken}")
    con.close()
    return 1 if broken else 0


if __name__ == "__main__":
    sys.exit(verify(sys.argv[1] if len(sys.argv) > 1 else DB_PATH))
