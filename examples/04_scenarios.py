from rowguard import RowGuardDB, Stage, configure_logging, run_no_overlap, run_overlap, run_versioned


def main():
    configure_logging("INFO")
    db = RowGuardDB.in_memory()
    for run in (run_no_overlap, run_overlap, run_versioned):
        db.reset_products()
        db.reset_versioned_products()
        report = run(db)
        print(f"== {report.scenario}: {report.message}")
        for step in report.steps:
            print("  ", step)
        print("   final:", report.snapshots[Stage.FINAL].model_dump(mode="json"))
    db.close()


if __name__ == "__main__":
    main()
